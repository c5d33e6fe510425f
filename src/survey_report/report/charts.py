# charts.py
from __future__ import annotations

from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from .entries import Distribution, QuestionReport  # noqa: E402


def plot_distribution(qr: QuestionReport, max_label: int = 40) -> Optional[Figure]:
    """
    Horizontal bar chart of a distribution's counts (total excluded).

    Returns None when the key has no distribution or no answers to draw.
    """
    dist = qr.result
    if not isinstance(dist, Distribution):
        return None
    entries = dist.entries(include_total=False)
    if not entries or all(e.count == 0 for e in entries):
        return None

    labels = [e.label if len(e.label) <= max_label else e.label[: max_label - 1] + "…" for e in entries]
    counts = [e.count for e in entries]

    fig, ax = plt.subplots(figsize=(8, max(2.0, 0.4 * len(entries) + 1)))
    bars = ax.barh(range(len(entries)), counts)
    ax.set_yticks(range(len(entries)))
    ax.set_yticklabels(labels)
    ax.invert_yaxis()
    ax.set_xlabel("Responses")
    ax.set_title(qr.code)

    for bar, e in zip(bars, entries):
        ax.text(bar.get_width(), bar.get_y() + bar.get_height() / 2, f" {e.count} ({e.percentage}%)", va="center")

    fig.tight_layout()
    return fig
