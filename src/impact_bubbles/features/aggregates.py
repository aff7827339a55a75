from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Literal, Sequence

import pandas as pd

from impact_bubbles.models import (
    Bubble,
    CategoryBubble,
    IssueTypeRecord,
    RawIssueRecord,
    SubcategoryBubble,
    SummaryRecord,
)

GroupBy = Literal["category", "subcategory"]

_SUMMARY_FRAME_COLUMNS = ["date", "category", "subcategory", "n_issues", "days_to_fix"]
# Blank subcategories are grouped under this key; loaders never emit "" themselves.
_NO_SUBCATEGORY = ""


def _summary_frame(records: Iterable[SummaryRecord]) -> pd.DataFrame:
    rows = [
        {
            "date": record.date,
            "category": record.category,
            "subcategory": record.subcategory or _NO_SUBCATEGORY,
            "n_issues": int(record.count),
            "days_to_fix": float(record.days_to_fix),
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=_SUMMARY_FRAME_COLUMNS)


def _reference_lookup(
    reference_table: Iterable[IssueTypeRecord],
) -> dict[tuple[str, str | None], IssueTypeRecord]:
    return {record.key: record for record in reference_table}


def aggregate_by_subcategory(
    summary_records: Iterable[SummaryRecord],
    reference_table: Iterable[IssueTypeRecord],
    start_date: date,
    end_date: date,
) -> list[SubcategoryBubble]:
    """Aggregate summary rows inside ``[start_date, end_date]`` per (category, subcategory).

    Groups come back in first-seen order. Groups whose issue count sums to zero
    are dropped because their averages are undefined.
    """
    if start_date > end_date:
        raise ValueError(f"start_date {start_date} is after end_date {end_date}")

    frame = _summary_frame(summary_records)
    window = frame[(frame["date"] >= start_date) & (frame["date"] <= end_date)]
    if window.empty:
        return []

    window = window.assign(weighted_days=window["days_to_fix"] * window["n_issues"])
    grouped = (
        window.groupby(["category", "subcategory"], sort=False)
        .agg(n_issues=("n_issues", "sum"), total_days=("weighted_days", "sum"))
        .reset_index()
    )

    reference = _reference_lookup(reference_table)
    bubbles: list[SubcategoryBubble] = []
    for row in grouped.itertuples(index=False):
        subcategory = row.subcategory or None
        issue_type = reference.get((row.category, subcategory))
        if issue_type is None:
            raise LookupError(
                f"No issue type definition for category={row.category!r} "
                f"subcategory={subcategory!r}"
            )
        count = int(row.n_issues)
        if count <= 0:
            continue
        total_days = float(row.total_days)
        avg_days_to_fix = total_days / count
        bubbles.append(
            SubcategoryBubble(
                category=row.category,
                subcategory=subcategory,
                count=count,
                total_days=total_days,
                effort_per_issue=issue_type.effort_per_issue,
                impact_per_day=issue_type.impact_per_day,
                avg_days_to_fix=avg_days_to_fix,
                total_effort=count * issue_type.effort_per_issue,
                total_impact=count * issue_type.impact_per_day * avg_days_to_fix,
            )
        )
    return bubbles


def aggregate_by_category(bubbles: Sequence[SubcategoryBubble]) -> list[CategoryBubble]:
    """Roll subcategory bubbles up to one bubble per category, keeping the constituents."""
    grouped: dict[str, list[SubcategoryBubble]] = {}
    for bubble in bubbles:
        grouped.setdefault(bubble.category, []).append(bubble)

    return [
        CategoryBubble(
            category=category,
            count=sum(member.count for member in members),
            total_days=sum(member.total_days for member in members),
            total_effort=sum(member.total_effort for member in members),
            total_impact=sum(member.total_impact for member in members),
            subcategories=tuple(members),
        )
        for category, members in grouped.items()
    ]


def aggregate(
    summary_records: Iterable[SummaryRecord],
    reference_table: Iterable[IssueTypeRecord],
    start_date: date,
    end_date: date,
    group_by: GroupBy = "category",
) -> list[Bubble]:
    fine = aggregate_by_subcategory(summary_records, reference_table, start_date, end_date)
    if group_by == "subcategory":
        return list(fine)
    if group_by == "category":
        return list(aggregate_by_category(fine))
    raise ValueError(f"Unsupported group_by: {group_by}")


@dataclass(frozen=True)
class RecordStats:
    total_issues: int
    total_impact: float
    avg_resolve_time: float | None
    high_severity_count: int
    categories_count: int


@dataclass(frozen=True)
class BubbleStats:
    total_issues: int
    total_effort: float
    total_impact: float
    avg_days_to_fix: float | None
    bubble_count: int


def summarize_records(records: Sequence[RawIssueRecord]) -> RecordStats:
    avg_resolve_time = None
    if records:
        avg_resolve_time = sum(record.avg_resolve_time for record in records) / len(records)
    return RecordStats(
        total_issues=sum(record.num_issues for record in records),
        total_impact=float(sum(record.business_impact for record in records)),
        avg_resolve_time=avg_resolve_time,
        high_severity_count=sum(1 for record in records if record.severity == "High"),
        categories_count=len(records),
    )


def summarize_bubbles(bubbles: Sequence[Bubble]) -> BubbleStats:
    total_issues = sum(bubble.count for bubble in bubbles)
    total_days = sum(bubble.total_days for bubble in bubbles)
    return BubbleStats(
        total_issues=total_issues,
        total_effort=float(sum(bubble.total_effort for bubble in bubbles)),
        total_impact=float(sum(bubble.total_impact for bubble in bubbles)),
        avg_days_to_fix=(total_days / total_issues) if total_issues > 0 else None,
        bubble_count=len(bubbles),
    )
