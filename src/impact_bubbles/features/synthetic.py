from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Sequence

import numpy as np

from impact_bubbles.config import SeverityTierConfig
from impact_bubbles.formatting import round_half_up
from impact_bubbles.models import RawIssueRecord

SyntheticMode = Literal["baseline", "enhanced"]


@dataclass(frozen=True)
class IssueCountBucket:
    threshold: float
    base: int
    span: int


# Empirical issue-volume distribution of the source service-desk workbook
# (median 62, p90 ~1612, max 8099).
ISSUE_COUNT_BUCKETS: tuple[IssueCountBucket, ...] = (
    IssueCountBucket(threshold=0.25, base=1, span=9),
    IssueCountBucket(threshold=0.5, base=10, span=52),
    IssueCountBucket(threshold=0.75, base=62, span=268),
    IssueCountBucket(threshold=0.9, base=330, span=1282),
    IssueCountBucket(threshold=0.95, base=1612, span=1123),
    IssueCountBucket(threshold=1.0, base=2735, span=5364),
)

ENHANCED_BASE_HOURS = {"Low": 24.0, "Medium": 48.0, "High": 96.0}
BASELINE_MIN_IMPACT = 500


def issue_count_from_draws(bucket_draw: float, spread_draw: float) -> int:
    """Map two uniform [0, 1) draws onto the piecewise issue-count distribution."""
    for bucket in ISSUE_COUNT_BUCKETS:
        if bucket_draw < bucket.threshold:
            return max(1, int(round_half_up(bucket.base + spread_draw * bucket.span)))
    last = ISSUE_COUNT_BUCKETS[-1]
    return max(1, int(round_half_up(last.base + spread_draw * last.span)))


def severity_from_draw(
    draw: float,
    severity_tiers: Sequence[SeverityTierConfig],
) -> SeverityTierConfig:
    tiers = {tier.severity: tier for tier in severity_tiers}
    high = tiers["High"]
    medium = tiers["Medium"]
    if draw < high.probability:
        return high
    if draw < high.probability + medium.probability:
        return medium
    return tiers["Low"]


def business_impact(
    mode: SyntheticMode,
    num_issues: int,
    tier: SeverityTierConfig,
    rng: np.random.Generator,
) -> float:
    if mode == "enhanced":
        multiplier = math.log10(num_issues + 1)
        return round_half_up(tier.daily_impact * multiplier * rng.uniform(0.8, 1.2))
    base = num_issues * rng.uniform(15.0, 50.0)
    return float(max(BASELINE_MIN_IMPACT, round_half_up(base + rng.uniform(-0.3, 0.3) * base)))


def resolve_time(
    mode: SyntheticMode,
    num_issues: int,
    tier: SeverityTierConfig,
    rng: np.random.Generator,
) -> float:
    if mode == "enhanced":
        complexity = math.log10(num_issues + 1)
        base_hours = ENHANCED_BASE_HOURS[tier.severity]
        return round_half_up(base_hours * complexity * rng.uniform(0.5, 1.5), 1)
    urgency = math.log10(num_issues * 50)
    return round_half_up(max(1.0, 100.0 - urgency * 10.0 + rng.uniform(0.0, 80.0)), 1)


def generate(
    mode: SyntheticMode,
    sample_size: int,
    category_pool: Sequence[str],
    severity_tiers: Sequence[SeverityTierConfig],
    rng: np.random.Generator,
) -> list[RawIssueRecord]:
    """Build ``sample_size`` randomized issue groups for demo and fallback charts."""
    if mode not in ("baseline", "enhanced"):
        raise ValueError(f"Unsupported synthetic mode: {mode}")
    if sample_size <= 0:
        raise ValueError("sample_size must be > 0")
    if not category_pool:
        raise ValueError("category_pool must not be empty")

    records: list[RawIssueRecord] = []
    for _ in range(sample_size):
        category = category_pool[int(rng.integers(len(category_pool)))]
        num_issues = issue_count_from_draws(rng.random(), rng.random())
        tier = severity_from_draw(rng.random(), severity_tiers)
        records.append(
            RawIssueRecord(
                category=category,
                num_issues=num_issues,
                business_impact=business_impact(mode, num_issues, tier, rng),
                avg_resolve_time=resolve_time(mode, num_issues, tier, rng),
                severity=tier.severity,
            )
        )
    return records


def sample_real_records(
    records: Sequence[RawIssueRecord],
    sample_size: int,
    rng: np.random.Generator,
) -> list[RawIssueRecord]:
    if sample_size <= 0:
        raise ValueError("sample_size must be > 0")
    if not records:
        return []
    take = min(sample_size, len(records))
    order = rng.permutation(len(records))[:take]
    return [records[int(index)] for index in order]


def category_pool(records: Sequence[RawIssueRecord], fallback: Sequence[str]) -> list[str]:
    pool = list(dict.fromkeys(record.category for record in records if record.category))
    return pool or list(fallback)
