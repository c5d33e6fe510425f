# postprocess.py
from __future__ import annotations

from .entries import TOTAL_CODE, Distribution, RawList, Result, Suppressed, UnknownType


def percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(100 * count / total, 2)


def set_percentage(dist: Distribution) -> None:
    """Percentages of every non-total entry relative to the distribution's own total."""
    total = dist.total
    denominator = total.count if total is not None else 0
    for entry in dist.entries(include_total=False):
        dist.update(entry.code, percentage=percentage(entry.count, denominator))


def move_total_to_end(dist: Distribution) -> None:
    dist.move_to_end(TOTAL_CODE)


def apply_cutoff(result: Result, cutoff: int) -> Result:
    """
    Minimum-sample suppression.

    A missing answer field becomes a suppression error when ``cutoff > 0`` and an
    empty distribution otherwise. Distributions with a total are compared by
    total count; totals-free distributions and raw lists by number of entries.
    Distributions leave here frozen.
    """
    if isinstance(result, (Suppressed, UnknownType)):
        return result
    if result is None:
        return Suppressed() if cutoff > 0 else Distribution().freeze()
    if isinstance(result, Distribution) and result.total is not None:
        return Suppressed() if result.total.count < cutoff else result.freeze()
    if isinstance(result, Distribution):
        return Suppressed() if len(result) < cutoff else result.freeze()
    if isinstance(result, RawList):
        return Suppressed() if len(result) < cutoff else result
    raise TypeError(f"unsupported result type: {type(result).__name__}")


def finish_distribution(dist: Distribution, cutoff: int) -> Result:
    # Percentage first, then the total goes last, then the sample threshold.
    set_percentage(dist)
    move_total_to_end(dist)
    return apply_cutoff(dist, cutoff)
