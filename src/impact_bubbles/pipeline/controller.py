from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import numpy as np
import pandas as pd

from impact_bubbles.config import AppConfig
from impact_bubbles.features.aggregates import aggregate
from impact_bubbles.features.synthetic import category_pool, generate, sample_real_records
from impact_bubbles.io.read import (
    DataLoadError,
    load_extract,
    load_issue_types,
    load_summary,
    load_tickets,
    ticket_records,
)
from impact_bubbles.models import (
    Bubble,
    CategoryBubble,
    IssueTypeRecord,
    RawIssueRecord,
    SummaryRecord,
)
from impact_bubbles.report.view_model import DashboardView, build_view_model
from impact_bubbles.state import DATA_MODES, DashboardState, DataMode, DateWindow

LOGGER = logging.getLogger(__name__)


class DashboardController:
    """Owns the single ``DashboardState`` and rebuilds it on every parameter change.

    Reference inputs are read once on first use and cached for the controller's
    lifetime. Load failures are recorded on the state as ``error`` so the
    renderer can show an error panel; reference lookup misses propagate.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(config.generator.random_seed)
        self.state = DashboardState(sample_size=config.generator.sample_size)
        self._issue_types: list[IssueTypeRecord] | None = None
        self._summary: list[SummaryRecord] | None = None
        self._tickets: pd.DataFrame | None = None
        self._extract: list[RawIssueRecord] | None = None
        self._source_categories: int | None = None

    def _require_path(self, value: str | None, option: str) -> Path:
        if not value:
            raise ValueError(f"data_source.{option} must be set for this mode")
        return Path(value)

    def _load_reference(self) -> tuple[list[IssueTypeRecord], list[SummaryRecord]]:
        source = self.config.data_source
        if self._issue_types is None:
            self._issue_types = load_issue_types(self._require_path(source.types_file, "types_file"))
        if self._summary is None:
            self._summary = load_summary(self._require_path(source.summary_file, "summary_file"))
        return self._issue_types, self._summary

    def _load_real_records(self) -> None:
        source = self.config.data_source
        if source.file_name:
            if self._tickets is None:
                self._tickets = load_tickets(Path(source.file_name))
            self._count_source_categories()
            return
        if source.extract_json:
            if self._extract is None:
                self._extract = load_extract(Path(source.extract_json))
            self._count_source_categories()
            return
        raise ValueError("data_source.file_name or data_source.extract_json must be set")

    def _count_source_categories(self) -> None:
        if self._source_categories is None:
            self._source_categories = len(category_pool(self._real_pool(), ()))

    def has_real_source(self) -> bool:
        source = self.config.data_source
        return bool(source.file_name or source.extract_json)

    def _real_pool(self) -> list[RawIssueRecord]:
        if self._tickets is not None:
            return ticket_records(self._tickets)
        return list(self._extract or [])

    def _initial_window(self, mode: DataMode) -> DateWindow:
        if mode == "aggregated":
            _, summary = self._load_reference()
            return DateWindow.from_dates(record.date for record in summary)
        if mode == "real" and self._tickets is not None:
            return DateWindow.from_dates(
                self._tickets["created_date"], span=self.config.generator.initial_window_days
            )
        return DateWindow(dates=())

    def _tickets_in_window(self, window: DateWindow) -> pd.DataFrame:
        frame = self._tickets
        if frame is None or window.is_empty:
            return frame if frame is not None else pd.DataFrame()
        mask = (frame["created_date"] >= window.start_date) & (
            frame["created_date"] <= window.end_date
        )
        return frame.loc[mask.to_numpy()]

    def _category_bubbles(self, window: DateWindow) -> tuple[CategoryBubble, ...]:
        if window.is_empty:
            return ()
        issue_types, summary = self._load_reference()
        bubbles = aggregate(summary, issue_types, window.start_date, window.end_date, "category")
        return tuple(bubble for bubble in bubbles if isinstance(bubble, CategoryBubble))

    def _records(self, state: DashboardState) -> tuple[RawIssueRecord, ...]:
        mode, window, size = state.mode, state.window, state.sample_size
        if mode == "real":
            if self._tickets is not None:
                pool = ticket_records(self._tickets_in_window(window))
            else:
                pool = self._real_pool()
            return tuple(sample_real_records(pool, size, self.rng))

        real = self._real_pool() if self.has_real_source() else []
        return tuple(
            generate(
                mode,
                size,
                category_pool(real, self.config.default_categories),
                self.config.severity_tiers,
                self.rng,
            )
        )

    def _rebuild(self, state: DashboardState) -> DashboardState:
        if state.is_aggregated:
            return replace(
                state,
                category_bubbles=self._category_bubbles(state.window),
                records=(),
                source_categories=self._source_categories,
                error=None,
            )
        return replace(
            state,
            category_bubbles=(),
            records=self._records(state),
            source_categories=self._source_categories,
            error=None,
        )

    def _apply(self, state: DashboardState) -> DashboardState:
        try:
            if state.is_aggregated:
                self._load_reference()
            elif state.mode == "real" or self.has_real_source():
                self._load_real_records()
            if state.window.is_empty:
                state = replace(state, window=self._initial_window(state.mode))
            state = self._rebuild(state)
        except DataLoadError as exc:
            LOGGER.exception("Failed to load data for %s mode", state.mode)
            state = replace(
                state,
                category_bubbles=(),
                records=(),
                error=f"{self.config.ui.error_message} ({exc})",
            )
        else:
            LOGGER.debug(
                "Regenerated %s data: %d bubbles, %d records, window %s",
                state.mode,
                len(state.category_bubbles),
                len(state.records),
                state.window.label or "n/a",
            )
        self.state = state
        return state

    def set_mode(self, mode: DataMode) -> DashboardState:
        if mode not in DATA_MODES:
            raise ValueError(f"Unsupported data mode: {mode}")
        state = replace(
            self.state,
            mode=mode,
            window=DateWindow(dates=()),
            drill_down=replace(self.state.drill_down, expanded=None),
        )
        return self._apply(state)

    def set_sample_size(self, sample_size: int) -> DashboardState:
        if sample_size <= 0:
            raise ValueError("sample_size must be > 0")
        return self._apply(replace(self.state, sample_size=sample_size))

    def set_date_range(self, start_index: int, end_index: int) -> DashboardState:
        window = self.state.window.with_range(start_index, end_index)
        return self._apply(replace(self.state, window=window))

    def set_window(self, window: DateWindow) -> DashboardState:
        return self._apply(replace(self.state, window=window))

    def regenerate(self) -> DashboardState:
        return self._apply(self.state)

    def toggle_category(self, category: str) -> DashboardState:
        """Filter changes only restyle the plot; the dataset is kept."""
        all_categories = self.state.plotted_categories()
        self.state = replace(
            self.state,
            category_filter=self.state.category_filter.toggle(category, all_categories),
        )
        return self.state

    def select_bubble(self, bubble: Bubble) -> DashboardState:
        self.state = replace(self.state, drill_down=self.state.drill_down.select(bubble))
        return self.state

    def select_category(self, category: str) -> DashboardState:
        for bubble in self.state.category_bubbles:
            if bubble.category == category:
                return self.select_bubble(bubble)
        raise LookupError(f"No category bubble named {category!r} in the current window")

    def view(self) -> DashboardView:
        return build_view_model(self.state, self.config)
