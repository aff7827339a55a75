from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

TYPES_COLUMNS = {
    "Category": "category",
    "Subcategory": "subcategory",
    "Effort_Per_Issue": "effort_per_issue",
    "Impact_Per_Day": "impact_per_day",
}

SUMMARY_COLUMNS = {
    "Date": "date",
    "Category": "category",
    "Subcategory": "subcategory",
    "Count": "count",
    "Days_To_Fix": "days_to_fix",
}

# Ticket exports only guarantee a creation timestamp; everything else has a fallback.
TICKET_REQUIRED_COLUMNS = ("created_time",)
TICKET_COLUMNS = {
    "created_time": "created_time",
    "resolved_time": "resolved_time",
    "resolution_hours": "resolution_hours",
    "category": "category",
    "sub_category": "sub_category",
    "est_per_day_cost_usd": "business_impact",
    "severity": "severity",
    "RequestID": "request_id",
    "request_status": "status",
}

EXTRACT_COLUMNS = {
    "category": "category",
    "sub_category": "sub_category",
    "# of issues": "num_issues",
    "est per-day business impact (USD)": "business_impact",
    "avg time to resolve (hours)": "avg_resolve_time",
    "severity_mode": "severity",
}


@dataclass(frozen=True)
class TicketDefaults:
    category: str = "Unknown"
    business_impact: float = 1000.0
    resolve_hours: float = 24.0
    severity: str = "Medium"


@dataclass(frozen=True)
class ExtractDefaults:
    category: str = "Unknown"
    num_issues: int = 0
    business_impact: float = 0.0
    avg_resolve_time: float = 0.0
    severity: str = "Low"


def normalize_columns(
    df: pd.DataFrame,
    mapping: dict[str, str],
    *,
    required: tuple[str, ...] | None = None,
    source: str = "CSV",
) -> pd.DataFrame:
    """Rename source columns to the canonical snake_case names used downstream."""
    stripped = df.rename(columns=lambda column: str(column).strip())
    required_columns = tuple(mapping) if required is None else required
    missing = [column for column in required_columns if column not in stripped.columns]
    if missing:
        missing_str = ", ".join(missing)
        raise ValueError(f"Missing required columns in {source}: {missing_str}")
    renamed = stripped.rename(columns=mapping)
    for canonical in mapping.values():
        if canonical not in renamed.columns:
            renamed[canonical] = pd.NA
    return renamed
