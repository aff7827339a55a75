from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Literal, Sequence

from impact_bubbles.models import Bubble, CategoryBubble, RawIssueRecord, SubcategoryBubble

DataMode = Literal["aggregated", "real", "baseline", "enhanced"]
DATA_MODES: tuple[DataMode, ...] = ("aggregated", "real", "baseline", "enhanced")


@dataclass(frozen=True)
class CategoryFilter:
    """Set of highlighted categories; the empty set means every category is shown."""

    active: frozenset[str] = frozenset()

    def is_active(self, category: str) -> bool:
        return not self.active or category in self.active

    def toggle(self, category: str, all_categories: Iterable[str]) -> CategoryFilter:
        active = set(self.active)
        if category in active:
            active.remove(category)
        else:
            active.add(category)
        if active == set(all_categories):
            active.clear()
        return CategoryFilter(active=frozenset(active))


@dataclass(frozen=True)
class DrillDown:
    expanded: str | None = None

    def select(self, bubble: Bubble) -> DrillDown:
        if isinstance(bubble, SubcategoryBubble):
            return DrillDown(expanded=None)
        return DrillDown(expanded=bubble.category)

    def visible(self, bubbles: Sequence[CategoryBubble]) -> list[Bubble]:
        if self.expanded is None:
            return list(bubbles)
        for bubble in bubbles:
            if bubble.category == self.expanded:
                return list(bubble.subcategories)
        # Expanded category has no issues in the current window.
        return []


@dataclass(frozen=True)
class DateWindow:
    """Inclusive index window over the sorted distinct dates available in the data."""

    dates: tuple[date, ...]
    start_index: int = 0
    end_index: int = 0

    @classmethod
    def from_dates(cls, dates: Iterable[date], span: int | None = None) -> DateWindow:
        ordered = tuple(sorted(set(dates)))
        if not ordered:
            return cls(dates=())
        last = len(ordered) - 1
        end_index = last if span is None else min(last, span)
        return cls(dates=ordered, start_index=0, end_index=end_index)

    @property
    def max_index(self) -> int:
        return max(len(self.dates) - 1, 0)

    @property
    def is_empty(self) -> bool:
        return not self.dates

    @property
    def start_date(self) -> date | None:
        return self.dates[self.start_index] if self.dates else None

    @property
    def end_date(self) -> date | None:
        return self.dates[self.end_index] if self.dates else None

    @property
    def day_count(self) -> int:
        return self.end_index - self.start_index + 1 if self.dates else 0

    @property
    def label(self) -> str:
        if not self.dates:
            return ""
        return f"{self.start_date.isoformat()} to {self.end_date.isoformat()}"

    def with_range(self, start_index: int, end_index: int) -> DateWindow:
        start_index, end_index = int(start_index), int(end_index)
        if start_index > end_index:
            start_index, end_index = end_index, start_index
        start_index = min(max(start_index, 0), self.max_index)
        end_index = min(max(end_index, 0), self.max_index)
        return replace(self, start_index=start_index, end_index=end_index)

    def contains(self, value: date) -> bool:
        if not self.dates:
            return False
        return self.start_date <= value <= self.end_date


@dataclass(frozen=True)
class DashboardState:
    """Everything the view-model needs; replaced wholesale on every change."""

    mode: DataMode = "aggregated"
    sample_size: int = 100
    window: DateWindow = field(default_factory=lambda: DateWindow(dates=()))
    category_filter: CategoryFilter = field(default_factory=CategoryFilter)
    drill_down: DrillDown = field(default_factory=DrillDown)
    category_bubbles: tuple[CategoryBubble, ...] = ()
    records: tuple[RawIssueRecord, ...] = ()
    # Distinct categories in the loaded ticket or extract data, when one is loaded.
    source_categories: int | None = None
    error: str | None = None

    @property
    def is_aggregated(self) -> bool:
        return self.mode == "aggregated"

    def visible_bubbles(self) -> list[Bubble]:
        return self.drill_down.visible(self.category_bubbles)

    def plotted_categories(self) -> list[str]:
        if self.is_aggregated:
            names = (bubble.category for bubble in self.visible_bubbles())
        else:
            names = (record.category for record in self.records)
        return sorted(set(names))
