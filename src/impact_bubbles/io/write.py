from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from impact_bubbles.models import Bubble, CategoryBubble, RawIssueRecord

BUBBLE_COLUMNS = [
    "kind",
    "category",
    "subcategory",
    "count",
    "total_days",
    "effort_per_issue",
    "impact_per_day",
    "avg_days_to_fix",
    "total_effort",
    "total_impact",
]


def write_table(df: pd.DataFrame, path: Path, fmt: str = "csv") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "csv":
        df.to_csv(path, index=False)
        return path
    if fmt == "json":
        df.to_json(path, orient="records", indent=2)
        return path
    raise ValueError(f"Unsupported table format: {fmt}")


def write_summary(data: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True, default=str), encoding="utf-8")
    return path


def records_frame(records: Sequence[RawIssueRecord]) -> pd.DataFrame:
    rows = []
    for record in records:
        row = asdict(record)
        row["total_exposure"] = record.total_exposure
        rows.append(row)
    return pd.DataFrame(rows)


def bubbles_frame(bubbles: Sequence[Bubble], *, include_subcategories: bool = False) -> pd.DataFrame:
    """One row per bubble; category rows may be followed by their subcategory rows."""
    rows: list[dict[str, Any]] = []
    for bubble in bubbles:
        rows.append(_bubble_row(bubble))
        if include_subcategories and isinstance(bubble, CategoryBubble):
            rows.extend(_bubble_row(child) for child in bubble.subcategories)
    return pd.DataFrame(rows, columns=BUBBLE_COLUMNS)


def _bubble_row(bubble: Bubble) -> dict[str, Any]:
    return {
        "kind": bubble.kind,
        "category": bubble.category,
        "subcategory": getattr(bubble, "subcategory", "") or "",
        "count": bubble.count,
        "total_days": bubble.total_days,
        "effort_per_issue": bubble.effort_per_issue,
        "impact_per_day": bubble.impact_per_day,
        "avg_days_to_fix": bubble.avg_days_to_fix,
        "total_effort": bubble.total_effort,
        "total_impact": bubble.total_impact,
    }
