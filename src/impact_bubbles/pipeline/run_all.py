from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from impact_bubbles.config import AppConfig
from impact_bubbles.io.write import bubbles_frame, records_frame, write_summary, write_table
from impact_bubbles.paths import OutputPaths, build_output_paths
from impact_bubbles.pipeline.controller import DashboardController
from impact_bubbles.playback import PlaybackController
from impact_bubbles.report.render import render_dashboard, write_view_model
from impact_bubbles.state import DashboardState, DataMode, DateWindow
from impact_bubbles.viz.bubbles import plot_bubble_chart

LOGGER = logging.getLogger(__name__)


def write_dataset_tables(state: DashboardState, paths: OutputPaths) -> list[Path]:
    written: list[Path] = []
    if state.is_aggregated:
        written.append(
            write_table(
                bubbles_frame(state.category_bubbles, include_subcategories=True),
                paths.tables / "bubbles.csv",
            )
        )
    else:
        written.append(write_table(records_frame(state.records), paths.tables / "records.csv"))
    written.append(
        write_summary(
            {
                "mode": state.mode,
                "sample_size": state.sample_size,
                "window_start": state.window.start_date,
                "window_end": state.window.end_date,
                "day_count": state.window.day_count,
                "active_categories": sorted(state.category_filter.active),
                "expanded_category": state.drill_down.expanded,
                "error": state.error,
            },
            paths.artifacts / "state.json",
        )
    )
    return written


def render_outputs(controller: DashboardController, out_dir: Path) -> Path:
    paths = build_output_paths(out_dir)
    view = controller.view()
    figure_files: list[str] = []
    try:
        figure = plot_bubble_chart(view, paths.figures / "bubbles.png")
        figure_files.append(figure.name)
    except (OSError, ValueError):
        LOGGER.exception("Failed to draw bubble chart figure")
    write_dataset_tables(controller.state, paths)
    return render_dashboard(view, paths.root, config=controller.config, figure_files=figure_files)


def configure_controller(
    config: AppConfig,
    mode: DataMode,
    *,
    sample_size: int | None = None,
    start_index: int | None = None,
    end_index: int | None = None,
    expand: str | None = None,
    highlight: list[str] | None = None,
) -> DashboardController:
    controller = DashboardController(config)
    if sample_size is not None:
        controller.state = replace(controller.state, sample_size=sample_size)
    state = controller.set_mode(mode)
    if state.error:
        return controller

    if start_index is not None or end_index is not None:
        window = controller.state.window
        controller.set_date_range(
            window.start_index if start_index is None else start_index,
            window.end_index if end_index is None else end_index,
        )
    if expand:
        controller.select_category(expand)
    for category in highlight or []:
        controller.toggle_category(category)
    return controller


def run_all(
    config: AppConfig,
    out_dir: Path,
    mode: DataMode = "aggregated",
    **options: Any,
) -> Path:
    controller = configure_controller(config, mode, **options)
    return render_outputs(controller, out_dir)


def run_playback(
    controller: DashboardController,
    out_dir: Path,
    *,
    step: int | None = None,
    interval_seconds: float | None = None,
) -> list[Path]:
    """Auto-advance the date window to the end, writing one view-model snapshot per frame."""
    paths = build_output_paths(out_dir)
    paths.frames.mkdir(parents=True, exist_ok=True)
    frames: list[Path] = []

    def on_advance(window: DateWindow) -> None:
        controller.set_window(window)
        frame = write_view_model(
            controller.view(), paths.frames / f"frame_{len(frames):04d}.json"
        )
        frames.append(frame)
        LOGGER.info("Frame %d: %s", len(frames), window.label)

    playback = PlaybackController(
        controller.state.window,
        on_advance,
        step=step or controller.config.playback.step,
        interval_seconds=(
            controller.config.playback.interval_ms / 1000.0
            if interval_seconds is None
            else interval_seconds
        ),
    )
    playback.run()
    render_outputs(controller, out_dir)
    return frames
