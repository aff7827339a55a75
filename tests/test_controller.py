from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import numpy as np
import pytest

from impact_bubbles.config import AppConfig, DataSourceConfig
from impact_bubbles.pipeline.controller import DashboardController

TYPES = [
    "Category,Subcategory,Effort_Per_Issue,Impact_Per_Day",
    "Network,Outage,5000,2000",
    "Network,Latency,1200,600",
    "Hardware,Laptop,800,150",
]

SUMMARY = [
    "Date,Category,Subcategory,Count,Days_To_Fix",
    "2024-01-01,Network,Outage,3,2",
    "2024-01-02,Network,Outage,5,4",
    "2024-01-02,Hardware,Laptop,4,1",
    "2024-01-03,Network,Latency,2,1",
    "2024-01-04,Hardware,Laptop,1,3",
]

TICKETS = [
    "created_time,resolved_time,resolution_hours,category,sub_category,"
    "est_per_day_cost_usd,severity,RequestID,request_status",
    "2024-02-01 08:00:00,2024-02-01 20:00:00,,Network Services,VPN,2500,High,REQ-1,Closed",
    "2024-02-02 09:00:00,,6,Hardware,Laptop,900,Low,REQ-2,Open",
    "2024-02-03 09:00:00,,,Email Services,Mailbox,,Medium,REQ-3,Open",
    "2024-02-20 09:00:00,,,Email Services,Mailbox,,Medium,REQ-4,Open",
]


def _write_inputs(tmp_path: Path) -> DataSourceConfig:
    (tmp_path / "types.csv").write_text("\n".join(TYPES) + "\n", encoding="utf-8")
    (tmp_path / "summary.csv").write_text("\n".join(SUMMARY) + "\n", encoding="utf-8")
    (tmp_path / "tickets.csv").write_text("\n".join(TICKETS) + "\n", encoding="utf-8")
    return DataSourceConfig(
        types_file=str(tmp_path / "types.csv"),
        summary_file=str(tmp_path / "summary.csv"),
        file_name=str(tmp_path / "tickets.csv"),
    )


def _controller(tmp_path: Path, **overrides) -> DashboardController:
    config = AppConfig(data_source=_write_inputs(tmp_path), **overrides)
    return DashboardController(config, rng=np.random.default_rng(5))


def test_aggregated_mode_defaults_to_full_span(tmp_path: Path) -> None:
    controller = _controller(tmp_path)

    state = controller.set_mode("aggregated")

    assert state.error is None
    assert state.window.start_date == date(2024, 1, 1)
    assert state.window.end_date == date(2024, 1, 4)
    assert [bubble.category for bubble in state.category_bubbles] == ["Network", "Hardware"]
    assert state.category_bubbles[0].count == 10


def test_date_range_changes_reaggregate(tmp_path: Path) -> None:
    controller = _controller(tmp_path)
    controller.set_mode("aggregated")

    state = controller.set_date_range(1, 0)

    assert (state.window.start_index, state.window.end_index) == (0, 1)
    network = state.category_bubbles[0]
    assert network.count == 8
    assert network.total_impact == pytest.approx(52000.0)


def test_filter_and_drill_down_keep_dataset(tmp_path: Path) -> None:
    controller = _controller(tmp_path)
    before = controller.set_mode("aggregated").category_bubbles

    filtered = controller.toggle_category("Hardware")
    drilled = controller.select_category("Network")

    assert filtered.category_filter.active == frozenset({"Hardware"})
    assert drilled.category_bubbles is before
    assert [bubble.kind for bubble in drilled.visible_bubbles()] == ["subcategory", "subcategory"]
    collapsed = controller.select_bubble(drilled.visible_bubbles()[0])
    assert collapsed.drill_down.expanded is None
    with pytest.raises(LookupError):
        controller.select_category("Printers")


def test_real_mode_samples_tickets_inside_window(tmp_path: Path) -> None:
    controller = _controller(tmp_path)

    state = controller.set_mode("real")

    assert state.window.start_date == date(2024, 2, 1)
    assert state.window.end_date == date(2024, 2, 20)
    assert len(state.records) == 4
    assert {record.request_id for record in state.records} == {"REQ-1", "REQ-2", "REQ-3", "REQ-4"}

    narrowed = controller.set_date_range(0, 1)
    assert {record.request_id for record in narrowed.records} == {"REQ-1", "REQ-2"}

    sampled = controller.set_sample_size(1)
    assert len(sampled.records) == 1
    assert sampled.sample_size == 1
    assert sampled.source_categories == 3
    assert "(3 categories analyzed)" in controller.view().data_source


def test_synthetic_modes_draw_categories_from_real_data(tmp_path: Path) -> None:
    controller = _controller(tmp_path)

    state = controller.set_mode("enhanced")

    assert len(state.records) == controller.config.generator.sample_size
    assert {record.category for record in state.records} <= {
        "Network Services",
        "Hardware",
        "Email Services",
    }
    assert state.window.is_empty


def test_synthetic_mode_without_real_source_uses_default_categories() -> None:
    config = AppConfig(default_categories=["Only"])
    controller = DashboardController(config, rng=np.random.default_rng(1))

    state = controller.set_mode("baseline")

    assert {record.category for record in state.records} == {"Only"}
    assert state.source_categories is None


def test_missing_input_is_recorded_as_error(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    config = AppConfig(
        data_source=DataSourceConfig(
            types_file=str(tmp_path / "missing.csv"),
            summary_file=str(tmp_path / "summary.csv"),
        )
    )
    controller = DashboardController(config)

    with caplog.at_level(logging.ERROR, logger="impact_bubbles.pipeline.controller"):
        state = controller.set_mode("aggregated")

    assert state.error is not None
    assert "missing.csv" in state.error
    assert state.category_bubbles == ()
    assert controller.view().error == state.error
    assert "Failed to load data" in caplog.text


def test_reference_misses_propagate(tmp_path: Path) -> None:
    _write_inputs(tmp_path)
    (tmp_path / "summary.csv").write_text(
        "Date,Category,Subcategory,Count,Days_To_Fix\n2024-01-01,Network,Fiber,1,1\n",
        encoding="utf-8",
    )
    config = AppConfig(
        data_source=DataSourceConfig(
            types_file=str(tmp_path / "types.csv"), summary_file=str(tmp_path / "summary.csv")
        )
    )

    with pytest.raises(LookupError, match="Fiber"):
        DashboardController(config).set_mode("aggregated")


def test_unknown_mode_and_sample_size_are_rejected(tmp_path: Path) -> None:
    controller = _controller(tmp_path)

    with pytest.raises(ValueError):
        controller.set_mode("streaming")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        controller.set_sample_size(0)
