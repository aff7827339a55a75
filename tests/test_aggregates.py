from __future__ import annotations

from datetime import date

import pytest

from impact_bubbles.features.aggregates import (
    aggregate,
    aggregate_by_category,
    aggregate_by_subcategory,
    summarize_bubbles,
    summarize_records,
)
from impact_bubbles.models import CategoryBubble, IssueTypeRecord, RawIssueRecord, SummaryRecord

REFERENCE = [
    IssueTypeRecord("Network", "Outage", effort_per_issue=5000, impact_per_day=2000),
    IssueTypeRecord("Network", "Latency", effort_per_issue=1200, impact_per_day=600),
    IssueTypeRecord("Hardware", None, effort_per_issue=300, impact_per_day=80),
]


def _summary(day: int, category: str, subcategory: str | None, count: int, days: float) -> SummaryRecord:
    return SummaryRecord(
        date=date(2024, 1, day),
        category=category,
        subcategory=subcategory,
        count=count,
        days_to_fix=days,
    )


def test_subcategory_bubble_matches_worked_example() -> None:
    summary = [
        _summary(1, "Network", "Outage", 3, 2),
        _summary(2, "Network", "Outage", 5, 4),
    ]

    [bubble] = aggregate(summary, REFERENCE, date(2024, 1, 1), date(2024, 1, 2), "subcategory")

    assert bubble.kind == "subcategory"
    assert bubble.count == 8
    assert bubble.total_days == pytest.approx(26.0)
    assert bubble.avg_days_to_fix == pytest.approx(3.25)
    assert bubble.total_effort == pytest.approx(40000.0)
    assert bubble.total_impact == pytest.approx(52000.0)
    assert bubble.total_impact == pytest.approx(
        bubble.count * bubble.impact_per_day * bubble.avg_days_to_fix
    )


def test_window_filter_is_inclusive() -> None:
    summary = [
        _summary(1, "Network", "Outage", 1, 1),
        _summary(2, "Network", "Outage", 2, 1),
        _summary(3, "Network", "Outage", 4, 1),
    ]

    [bubble] = aggregate_by_subcategory(summary, REFERENCE, date(2024, 1, 2), date(2024, 1, 3))

    assert bubble.count == 6


def test_category_rollup_sums_subcategories() -> None:
    summary = [
        _summary(1, "Network", "Outage", 3, 2),
        _summary(1, "Hardware", None, 4, 1),
        _summary(2, "Network", "Latency", 2, 5),
        _summary(2, "Network", "Outage", 5, 4),
    ]

    bubbles = aggregate(summary, REFERENCE, date(2024, 1, 1), date(2024, 1, 2))

    assert [bubble.category for bubble in bubbles] == ["Network", "Hardware"]
    network = bubbles[0]
    assert isinstance(network, CategoryBubble)
    assert network.kind == "category"
    assert network.count == sum(sub.count for sub in network.subcategories) == 10
    assert network.total_effort == pytest.approx(
        sum(sub.total_effort for sub in network.subcategories)
    )
    assert network.total_impact == pytest.approx(
        sum(sub.total_impact for sub in network.subcategories)
    )
    assert [sub.subcategory for sub in network.subcategories] == ["Outage", "Latency"]
    assert network.effort_per_issue == pytest.approx((40000 + 2400) / 10)
    assert network.impact_per_day == pytest.approx((2000 * 8 + 600 * 2) / 10)
    assert network.avg_days_to_fix == pytest.approx((26 + 10) / 10)


def test_missing_reference_row_raises_lookup_error() -> None:
    summary = [_summary(1, "Network", "Fiber Cut", 1, 1)]

    with pytest.raises(LookupError, match="Fiber Cut"):
        aggregate(summary, REFERENCE, date(2024, 1, 1), date(2024, 1, 1))


def test_zero_count_groups_are_excluded() -> None:
    summary = [
        _summary(1, "Network", "Outage", 0, 3),
        _summary(1, "Network", "Latency", 2, 1),
    ]

    bubbles = aggregate_by_subcategory(summary, REFERENCE, date(2024, 1, 1), date(2024, 1, 1))

    assert [bubble.subcategory for bubble in bubbles] == ["Latency"]


def test_empty_window_returns_no_bubbles() -> None:
    summary = [_summary(1, "Network", "Outage", 3, 2)]

    assert aggregate(summary, REFERENCE, date(2024, 2, 1), date(2024, 2, 5)) == []
    assert aggregate([], REFERENCE, date(2024, 1, 1), date(2024, 1, 5)) == []


def test_reversed_dates_and_unknown_grouping_are_rejected() -> None:
    with pytest.raises(ValueError):
        aggregate([], REFERENCE, date(2024, 1, 5), date(2024, 1, 1))
    with pytest.raises(ValueError, match="group_by"):
        aggregate([], REFERENCE, date(2024, 1, 1), date(2024, 1, 5), "severity")  # type: ignore[arg-type]


def test_each_call_returns_fresh_objects() -> None:
    summary = [_summary(1, "Network", "Outage", 3, 2)]

    first = aggregate(summary, REFERENCE, date(2024, 1, 1), date(2024, 1, 1))
    second = aggregate(summary, REFERENCE, date(2024, 1, 1), date(2024, 1, 1))

    assert first == second
    assert first is not second
    assert first[0] is not second[0]


def test_aggregate_by_category_keeps_first_seen_order() -> None:
    summary = [
        _summary(1, "Hardware", None, 1, 1),
        _summary(1, "Network", "Latency", 1, 1),
    ]
    fine = aggregate_by_subcategory(summary, REFERENCE, date(2024, 1, 1), date(2024, 1, 1))

    rolled = aggregate_by_category(fine)

    assert [bubble.category for bubble in rolled] == ["Hardware", "Network"]


def test_summarize_records_and_bubbles() -> None:
    records = [
        RawIssueRecord("Network", 10, 2000.0, 12.0, "High"),
        RawIssueRecord("Hardware", 5, 500.0, 6.0, "Low"),
    ]
    stats = summarize_records(records)

    assert stats.total_issues == 15
    assert stats.total_impact == 2500.0
    assert stats.avg_resolve_time == pytest.approx(9.0)
    assert stats.high_severity_count == 1
    assert stats.categories_count == 2
    assert summarize_records([]).avg_resolve_time is None

    summary = [_summary(1, "Network", "Outage", 3, 2), _summary(2, "Network", "Outage", 5, 4)]
    bubble_stats = summarize_bubbles(
        aggregate(summary, REFERENCE, date(2024, 1, 1), date(2024, 1, 2))
    )
    assert bubble_stats.total_issues == 8
    assert bubble_stats.avg_days_to_fix == pytest.approx(3.25)
    assert summarize_bubbles([]).avg_days_to_fix is None
