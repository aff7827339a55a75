from __future__ import annotations

import numpy as np
import pytest

from impact_bubbles.config import AppConfig
from impact_bubbles.features.synthetic import (
    BASELINE_MIN_IMPACT,
    category_pool,
    generate,
    issue_count_from_draws,
    sample_real_records,
    severity_from_draw,
)
from impact_bubbles.models import RawIssueRecord

TIERS = AppConfig().severity_tiers


def test_issue_count_buckets_and_half_up_rounding() -> None:
    assert issue_count_from_draws(0.0, 0.0) == 1
    assert issue_count_from_draws(0.1, 0.5) == 6  # 1 + 4.5 rounds up
    assert issue_count_from_draws(0.3, 0.0) == 10
    assert issue_count_from_draws(0.95, 0.0) == 2735
    assert issue_count_from_draws(0.999, 0.999) == round(2735 + 0.999 * 5364)


def test_severity_thresholds() -> None:
    assert severity_from_draw(0.95, TIERS).severity == "Low"
    assert severity_from_draw(0.05, TIERS).severity == "High"
    assert severity_from_draw(0.2, TIERS).severity == "Medium"
    assert severity_from_draw(0.45, TIERS).severity == "Low"


@pytest.mark.parametrize("mode", ["baseline", "enhanced"])
def test_generate_respects_sample_size_and_bounds(mode: str) -> None:
    pool = ["Network", "Hardware", "Email"]
    records = generate(mode, 250, pool, TIERS, np.random.default_rng(7))  # type: ignore[arg-type]

    assert len(records) == 250
    assert all(record.num_issues >= 1 for record in records)
    assert {record.category for record in records} <= set(pool)
    assert {record.severity for record in records} <= {"Low", "Medium", "High"}
    assert all(record.avg_resolve_time >= 0 for record in records)
    for record in records:
        assert record.avg_resolve_time * 10 == pytest.approx(round(record.avg_resolve_time * 10))
    if mode == "baseline":
        assert all(record.business_impact >= BASELINE_MIN_IMPACT for record in records)
        assert all(record.avg_resolve_time >= 1 for record in records)


def test_generate_is_reproducible_with_a_seed() -> None:
    first = generate("enhanced", 20, ["A", "B"], TIERS, np.random.default_rng(42))
    second = generate("enhanced", 20, ["A", "B"], TIERS, np.random.default_rng(42))
    third = generate("enhanced", 20, ["A", "B"], TIERS, np.random.default_rng(43))

    assert first == second
    assert first != third


def test_generate_rejects_bad_inputs() -> None:
    rng = np.random.default_rng(0)
    with pytest.raises(ValueError, match="category_pool"):
        generate("baseline", 5, [], TIERS, rng)
    with pytest.raises(ValueError, match="sample_size"):
        generate("baseline", 0, ["A"], TIERS, rng)
    with pytest.raises(ValueError, match="mode"):
        generate("chaotic", 5, ["A"], TIERS, rng)  # type: ignore[arg-type]


def test_sample_real_records_takes_a_subset() -> None:
    records = [RawIssueRecord(f"C{index}", 1, 1000.0, 24.0, "Medium") for index in range(10)]
    rng = np.random.default_rng(3)

    sampled = sample_real_records(records, 4, rng)
    everything = sample_real_records(records, 50, rng)

    assert len(sampled) == 4
    assert len(set(record.category for record in sampled)) == 4
    assert sorted(record.category for record in everything) == sorted(
        record.category for record in records
    )
    assert sample_real_records([], 5, rng) == []
    with pytest.raises(ValueError):
        sample_real_records(records, 0, rng)


def test_category_pool_prefers_loaded_categories() -> None:
    records = [
        RawIssueRecord("Network", 1, 1.0, 1.0, "Low"),
        RawIssueRecord("Hardware", 1, 1.0, 1.0, "Low"),
        RawIssueRecord("Network", 1, 1.0, 1.0, "Low"),
    ]

    assert category_pool(records, ["Fallback"]) == ["Network", "Hardware"]
    assert category_pool([], ["Fallback"]) == ["Fallback"]
