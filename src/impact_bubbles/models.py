from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Union

Severity = Literal["Low", "Medium", "High"]
BubbleKind = Literal["category", "subcategory"]


@dataclass(frozen=True)
class IssueTypeRecord:
    """Reference row mapping a (category, subcategory) to nominal cost constants."""

    category: str
    subcategory: str | None
    effort_per_issue: float
    impact_per_day: float

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.category, self.subcategory)


@dataclass(frozen=True)
class SummaryRecord:
    date: date
    category: str
    subcategory: str | None
    count: int
    days_to_fix: float

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.category, self.subcategory)


@dataclass(frozen=True)
class RawIssueRecord:
    """One sampled ticket or issue group plotted directly without aggregation."""

    category: str
    num_issues: int
    business_impact: float
    avg_resolve_time: float
    severity: Severity
    sub_category: str = ""
    request_id: str | None = None
    status: str | None = None

    @property
    def total_exposure(self) -> float:
        return self.business_impact * self.avg_resolve_time / 24.0


@dataclass(frozen=True)
class SubcategoryBubble:
    category: str
    subcategory: str | None
    count: int
    total_days: float
    effort_per_issue: float
    impact_per_day: float
    avg_days_to_fix: float
    total_effort: float
    total_impact: float
    kind: BubbleKind = field(default="subcategory", init=False)

    @property
    def key(self) -> str:
        return f"{self.category}|{self.subcategory or ''}"


@dataclass(frozen=True)
class CategoryBubble:
    """Roll-up of every subcategory bubble sharing a category.

    Averages are derived from the retained subcategories so a drill-down can
    always be reconciled against the roll-up totals.
    """

    category: str
    count: int
    total_days: float
    total_effort: float
    total_impact: float
    subcategories: tuple[SubcategoryBubble, ...] = ()
    kind: BubbleKind = field(default="category", init=False)

    @property
    def key(self) -> str:
        return self.category

    @property
    def effort_per_issue(self) -> float:
        if self.count <= 0:
            return 0.0
        return self.total_effort / self.count

    @property
    def impact_per_day(self) -> float:
        if self.count <= 0:
            return 0.0
        weighted = sum(sub.impact_per_day * sub.count for sub in self.subcategories)
        return weighted / self.count

    @property
    def avg_days_to_fix(self) -> float:
        if self.count <= 0:
            return 0.0
        return self.total_days / self.count


Bubble = Union[CategoryBubble, SubcategoryBubble]
