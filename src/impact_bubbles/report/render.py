from __future__ import annotations

import json
import logging
import math
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from impact_bubbles.config import AppConfig
from impact_bubbles.report.view_model import DashboardView

LOGGER = logging.getLogger(__name__)

VIEW_MODEL_FILE = "view_model.json"


def _template_env() -> Environment:
    templates_path = Path(__file__).resolve().parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_path)),
        autoescape=select_autoescape(enabled_extensions=("html", "xml", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _json_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    return value


def write_view_model(view: DashboardView, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(_json_safe(view.as_dict()), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return path


def render_dashboard(
    view: DashboardView,
    out_dir: Path,
    *,
    config: AppConfig | None = None,
    figure_files: list[str] | None = None,
) -> Path:
    """Write ``dashboard.html`` plus the JSON snapshot it was rendered from."""
    generated_at = datetime.now(timezone.utc).isoformat()
    template = _template_env().get_template("dashboard.html.j2")
    ui = config.ui if config is not None else None

    rendered = template.render(
        generated_at=generated_at,
        view=view,
        methodology=ui.methodology if ui is not None else "",
        figure_files=sorted(figure_files or []),
    )

    report_path = out_dir / "dashboard.html"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(rendered, encoding="utf-8")
    write_view_model(view, out_dir / "artifacts" / VIEW_MODEL_FILE)
    LOGGER.info("Rendered %d bubbles to %s", len(view.bubbles), report_path)
    return report_path
