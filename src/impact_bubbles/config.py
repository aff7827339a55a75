from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

SeverityName = Literal["Low", "Medium", "High"]
SEVERITY_NAMES: tuple[SeverityName, ...] = ("Low", "Medium", "High")

DEFAULT_CATEGORIES = [
    "Software Service",
    "Hardware",
    "Network Services",
    "Security Services",
    "Email Services",
    "Server Services",
    "Login Issue",
    "SAP",
    "Data Services",
    "Mobile Services",
    "Account Management",
    "Change Request",
    "DevOps Automation",
    "LM Admin Service Desk",
    "LM InfoWeb Helpdesk",
    "Hardware Asset Allocation",
    "Telephony",
    "Others",
    "PMS",
    "Corporate Support",
    "AAAS Services",
    "ACCOPS",
    "Concur Concerns",
    "Darwin Box Concern",
    "FMS Support",
    "LLM Foundry",
    "LM Back Up and Restore",
    "LM CCA",
    "LM Common Request",
    "LM Computers",
    "LM Hybrid Working",
    "LM ISMS Incident",
    "LM Onboarding",
    "LM Printer and Scanner",
    "Prohance",
    "S/4 HANA",
    "Soc",
    "Springer Nature Bflux",
    "TechSol",
    "WFH",
]

DEFAULT_CATEGORY_COLORS = {
    "Quick Wins": "#27ae60",
    "Major Projects": "#3498db",
    "Fill-ins": "#f39c12",
    "Thankless Tasks": "#e74c3c",
    "Critical Infrastructure": "#c0392b",
    "High Impact Operations": "#2980b9",
    "Medium Impact Systems": "#f39c12",
    "Routine Support": "#95a5a6",
    "Executive Support": "#8e44ad",
    "Compliance Systems": "#34495e",
}


class MarginConfig(BaseModel):
    top: int = Field(default=60, ge=0)
    right: int = Field(default=80, ge=0)
    bottom: int = Field(default=80, ge=0)
    left: int = Field(default=120, ge=0)


class ColorsConfig(BaseModel):
    scheme: str = "schemeSet3"
    severity: dict[str, str] = Field(
        default_factory=lambda: {"High": "#dc3545", "Medium": "#ffc107", "Low": "#28a745"}
    )
    category: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_CATEGORY_COLORS))
    inactive: str = "#cccccc"


class ScaleBoundsConfig(BaseModel):
    x_domain: tuple[float, float] | None = None
    y_domain: tuple[float, float] | None = None
    size_domain: tuple[float, float] | None = None
    min_radius: float = Field(default=4.0, ge=0.0)
    max_radius: float = Field(default=35.0, gt=0.0)
    nice: bool = True

    @model_validator(mode="after")
    def _check_radius_order(self) -> ScaleBoundsConfig:
        if self.min_radius > self.max_radius:
            raise ValueError("min_radius must be <= max_radius")
        return self


def _aggregated_bounds() -> ScaleBoundsConfig:
    return ScaleBoundsConfig(
        x_domain=(0.0, 700_000.0),
        y_domain=(0.0, 2_500_000.0),
        size_domain=(0.0, 500.0),
        min_radius=8.0,
        max_radius=60.0,
        nice=False,
    )


class ChartConfig(BaseModel):
    width: int = Field(default=1200, ge=100)
    height: int = Field(default=700, ge=100)
    margin: MarginConfig = Field(default_factory=MarginConfig)
    colors: ColorsConfig = Field(default_factory=ColorsConfig)
    active_opacity: float = Field(default=0.7, ge=0.0, le=1.0)
    inactive_opacity: float = Field(default=0.2, ge=0.0, le=1.0)
    raw: ScaleBoundsConfig = Field(default_factory=ScaleBoundsConfig)
    aggregated: ScaleBoundsConfig = Field(default_factory=_aggregated_bounds)

    @property
    def inner_width(self) -> float:
        return float(self.width - self.margin.left - self.margin.right)

    @property
    def inner_height(self) -> float:
        return float(self.height - self.margin.top - self.margin.bottom)


class SeverityTierConfig(BaseModel):
    severity: SeverityName
    daily_impact: float = Field(ge=0.0)
    probability: float = Field(ge=0.0, le=1.0)


def _default_severity_tiers() -> list[SeverityTierConfig]:
    return [
        SeverityTierConfig(severity="Low", daily_impact=200.0, probability=0.6),
        SeverityTierConfig(severity="Medium", daily_impact=1000.0, probability=0.3),
        SeverityTierConfig(severity="High", daily_impact=5000.0, probability=0.1),
    ]


class DataSourceConfig(BaseModel):
    file_name: str | None = None
    extract_json: str | None = None
    types_file: str | None = None
    summary_file: str | None = None
    description: str = "Service desk request export"
    total_categories: int = Field(default=len(DEFAULT_CATEGORIES), ge=0)


class UIConfig(BaseModel):
    title: str = "Service Desk Issues: Business Impact vs Resolution Time"
    methodology: str = (
        "Bubble size shows issue volume; position shows resolution time and daily impact."
    )
    x_label_raw: str = "Average Time to Resolve (hours)"
    y_label_raw: str = "Estimated Per-Day Business Impact (USD)"
    x_label_aggregated: str = "Effort per Issue (USD)"
    y_label_aggregated: str = "Impact per Day (USD)"
    error_message: str = "Error loading data. Check the log for details."


class GeneratorConfig(BaseModel):
    sample_size: int = Field(default=100, ge=1)
    random_seed: int | None = Field(default=None, ge=0)
    initial_window_days: int = Field(default=30, ge=0)


class PlaybackConfig(BaseModel):
    step: int = Field(default=10, ge=1)
    interval_ms: int = Field(default=100, ge=0)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    chart: ChartConfig = Field(default_factory=ChartConfig)
    severity_tiers: list[SeverityTierConfig] = Field(default_factory=_default_severity_tiers)
    default_categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    data_source: DataSourceConfig = Field(default_factory=DataSourceConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)

    @model_validator(mode="after")
    def _check_severity_tiers(self) -> AppConfig:
        names = [tier.severity for tier in self.severity_tiers]
        if sorted(names) != sorted(SEVERITY_NAMES):
            raise ValueError("severity_tiers must define Low, Medium and High exactly once")
        total = sum(tier.probability for tier in self.severity_tiers)
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"severity_tiers probabilities must sum to 1.0 (got {total:.6f})")
        return self


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
DATA_DIR_ENV = "IMPACT_BUBBLES_DATA_DIR"


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    """Load a YAML or JSON config file; JSON documents parse as YAML."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    env_dir = os.getenv(DATA_DIR_ENV)
    base_dir = Path(env_dir) if env_dir else path.resolve().parent

    source = config.data_source
    source.file_name = _resolve_optional_path(source.file_name, base_dir)
    source.extract_json = _resolve_optional_path(source.extract_json, base_dir)
    source.types_file = _resolve_optional_path(source.types_file, base_dir)
    source.summary_file = _resolve_optional_path(source.summary_file, base_dir)
    return config
