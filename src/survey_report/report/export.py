# export.py
from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd

from .entries import Distribution, RawList, Report


FRAME_COLUMNS = [
    "group",
    "key",
    "code",
    "text",
    "type",
    "mandatory",
    "numeric_only",
    "hidden",
    "kind",
    "answer_code",
    "answer_label",
    "count",
    "percentage",
    "value",
    "error",
]


def _json_sanitize(obj: Any) -> Any:
    if obj is None:
        return None
    if isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, datetime):
        return obj.replace(microsecond=0).isoformat()
    if is_dataclass(obj) and not isinstance(obj, type):
        return _json_sanitize(asdict(obj))
    if isinstance(obj, dict):
        return {str(k): _json_sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_json_sanitize(v) for v in obj]
    try:
        json.dumps(obj)
        return obj
    except TypeError:
        return str(obj)


def report_to_dict(report: Report) -> Dict[str, Any]:
    return _json_sanitize(report.to_dict())


def report_to_json(report: Report, indent: int = 2) -> str:
    return json.dumps(report_to_dict(report), ensure_ascii=False, indent=indent)


def write_report_json(report: Report, path: Union[str, Path]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(report_to_json(report), encoding="utf-8")
    return p


def report_to_frame(report: Report) -> pd.DataFrame:
    """
    Long table of a report: one row per distribution entry, raw value or error.

    ``kind`` is ``answer``, ``total``, ``value``, ``error`` or ``definition``
    (a key with no answer field, e.g. definitions-only or text display).
    """
    rows: List[Dict[str, Any]] = []
    for group, items in report.items():
        for key, qr in items.items():
            base = {
                "group": group,
                "key": key,
                "code": qr.code,
                "text": qr.text,
                "type": qr.type,
                "mandatory": qr.mandatory,
                "numeric_only": qr.numeric_only,
                "hidden": qr.hidden,
            }
            result = qr.result
            if isinstance(result, Distribution):
                for e in result:
                    rows.append({
                        **base,
                        "kind": "total" if e.is_total else "answer",
                        "answer_code": e.code,
                        "answer_label": e.label,
                        "count": e.count,
                        "percentage": e.percentage,
                    })
            elif isinstance(result, RawList):
                rows.extend({**base, "kind": "value", "value": v} for v in result.values)
            elif qr.error is not None:
                rows.append({**base, "kind": "error", "error": qr.error})
            else:
                rows.append({**base, "kind": "definition"})

    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    # Keep counts integral even when the frame has no distribution rows.
    df["count"] = df["count"].astype("Int64")
    return df


def summary_frame(report: Report) -> pd.DataFrame:
    # One row per key: answered total (distribution total or number of raw values), or the error.
    rows: List[Dict[str, Any]] = []
    for group, items in report.items():
        for key, qr in items.items():
            answered = None
            result = qr.result
            if isinstance(result, Distribution):
                total = result.total
                answered = total.count if total is not None else sum(e.count for e in result)
            elif isinstance(result, RawList):
                answered = len(result)
            rows.append({
                "group": group,
                "key": key,
                "code": qr.code,
                "type": qr.type,
                "answered": answered,
                "error": qr.error,
            })
    df = pd.DataFrame(rows, columns=["group", "key", "code", "type", "answered", "error"])
    df["answered"] = df["answered"].astype("Int64")
    return df
