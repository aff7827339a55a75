from __future__ import annotations

from pathlib import Path

import typer

from impact_bubbles.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from impact_bubbles.io.write import records_frame, write_table
from impact_bubbles.logging import configure_logging
from impact_bubbles.pipeline.run_all import configure_controller, run_all, run_playback
from impact_bubbles.state import DATA_MODES, DataMode

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _check_mode(mode: str) -> DataMode:
    if mode not in DATA_MODES:
        raise typer.BadParameter(f"Unknown mode {mode!r}; choose one of {', '.join(DATA_MODES)}")
    return mode  # type: ignore[return-value]


def _require_sources_for_mode(mode: DataMode, cfg: AppConfig) -> None:
    source = cfg.data_source
    if mode == "aggregated" and not (source.types_file and source.summary_file):
        raise typer.BadParameter(
            "Aggregated mode needs data_source.types_file and data_source.summary_file "
            "(or --types/--summary)."
        )
    if mode == "real" and not (source.file_name or source.extract_json):
        raise typer.BadParameter(
            "Real mode needs data_source.file_name or data_source.extract_json "
            "(or --tickets/--extract)."
        )


def _apply_source_overrides(
    cfg: AppConfig,
    *,
    types: Path | None = None,
    summary: Path | None = None,
    tickets: Path | None = None,
    extract: Path | None = None,
) -> None:
    source = cfg.data_source
    if types is not None:
        source.types_file = str(types)
    if summary is not None:
        source.summary_file = str(summary)
    if tickets is not None:
        source.file_name = str(tickets)
    if extract is not None:
        source.extract_json = str(extract)


@app.command()
def render(
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    mode: str = typer.Option("aggregated", help="aggregated, real, baseline or enhanced."),
    types: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    summary: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    tickets: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    extract: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    sample_size: int | None = typer.Option(None, min=1),
    seed: int | None = typer.Option(None, min=0, help="Seed for sampling and synthesis."),
    start_index: int | None = typer.Option(None, min=0),
    end_index: int | None = typer.Option(None, min=0),
    expand: str | None = typer.Option(None, help="Category to drill down into."),
    highlight: list[str] = typer.Option([], help="Categories to highlight; repeatable."),
) -> None:
    """Render the bubble dashboard (HTML, PNG, tables) for one data mode."""
    configure_logging()
    data_mode = _check_mode(mode)
    cfg = _load_app_config(config)
    _apply_source_overrides(cfg, types=types, summary=summary, tickets=tickets, extract=extract)
    _require_sources_for_mode(data_mode, cfg)
    if seed is not None:
        cfg.generator.random_seed = seed

    try:
        report_path = run_all(
            cfg,
            out,
            data_mode,
            sample_size=sample_size,
            start_index=start_index,
            end_index=end_index,
            expand=expand,
            highlight=highlight,
        )
    except LookupError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Dashboard written to: {report_path}")


@app.command()
def synthesize(
    out: Path = typer.Option(Path("out/tables/synthetic.csv"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    mode: str = typer.Option("enhanced", help="baseline or enhanced."),
    tickets: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    extract: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    sample_size: int | None = typer.Option(None, min=1),
    seed: int | None = typer.Option(None, min=0),
) -> None:
    """Write a synthetic issue sample to CSV, drawing categories from loaded data when available."""
    configure_logging()
    if mode not in ("baseline", "enhanced"):
        raise typer.BadParameter("mode must be 'baseline' or 'enhanced'")
    cfg = _load_app_config(config)
    _apply_source_overrides(cfg, tickets=tickets, extract=extract)
    if seed is not None:
        cfg.generator.random_seed = seed

    controller = configure_controller(cfg, mode, sample_size=sample_size)  # type: ignore[arg-type]
    if controller.state.error:
        raise typer.BadParameter(controller.state.error)
    records = controller.state.records
    path = write_table(records_frame(records), out)
    typer.echo(f"Wrote {len(records)} synthetic records to: {path}")


@app.command()
def play(
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    mode: str = typer.Option("aggregated", help="aggregated or real."),
    types: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    summary: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    tickets: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    start_index: int = typer.Option(0, min=0),
    end_index: int | None = typer.Option(None, min=0, help="Defaults to a config-sized window."),
    step: int | None = typer.Option(None, min=1),
    interval_ms: int | None = typer.Option(None, min=0),
    seed: int | None = typer.Option(None, min=0),
) -> None:
    """Advance the date window until the last date, writing one view-model frame per step."""
    configure_logging()
    data_mode = _check_mode(mode)
    if data_mode not in ("aggregated", "real"):
        raise typer.BadParameter("Playback needs a dated mode: 'aggregated' or 'real'")
    cfg = _load_app_config(config)
    _apply_source_overrides(cfg, types=types, summary=summary, tickets=tickets)
    _require_sources_for_mode(data_mode, cfg)
    if seed is not None:
        cfg.generator.random_seed = seed

    controller = configure_controller(cfg, data_mode)
    if controller.state.error:
        raise typer.BadParameter(controller.state.error)
    window = controller.state.window
    if window.is_empty:
        raise typer.BadParameter("No dated rows available for playback")
    if end_index is None:
        end_index = start_index + cfg.generator.initial_window_days
    controller.set_date_range(start_index, end_index)

    frames = run_playback(
        controller,
        out,
        step=step,
        interval_seconds=None if interval_ms is None else interval_ms / 1000.0,
    )
    typer.echo(
        f"Playback complete. Frames: {len(frames)}; final window: {controller.state.window.label}"
    )


if __name__ == "__main__":
    app()
