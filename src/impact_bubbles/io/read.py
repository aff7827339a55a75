from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from impact_bubbles.config import SEVERITY_NAMES
from impact_bubbles.io.schema import (
    EXTRACT_COLUMNS,
    SUMMARY_COLUMNS,
    TICKET_COLUMNS,
    TICKET_REQUIRED_COLUMNS,
    TYPES_COLUMNS,
    ExtractDefaults,
    TicketDefaults,
    normalize_columns,
)
from impact_bubbles.models import IssueTypeRecord, RawIssueRecord, Severity, SummaryRecord

LOGGER = logging.getLogger(__name__)

EXTRACT_SUMMARY_SHEET = "Summary"


class DataLoadError(ValueError):
    """Raised when an input file is missing or cannot be parsed into records."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


def _read_csv(path: Path) -> pd.DataFrame:
    if not path.is_file():
        raise DataLoadError(path, "file not found")
    try:
        # Plain comma-delimited exports: no quoting, fields never contain commas.
        return pd.read_csv(
            path,
            encoding="utf-8-sig",
            dtype=str,
            keep_default_na=False,
            quoting=csv.QUOTE_NONE,
            skipinitialspace=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise DataLoadError(path, f"malformed CSV ({exc})") from exc


def _normalize(df: pd.DataFrame, mapping: dict[str, str], path: Path, **kwargs: Any) -> pd.DataFrame:
    try:
        return normalize_columns(df, mapping, source=path.name, **kwargs)
    except ValueError as exc:
        raise DataLoadError(path, str(exc)) from exc


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


def _numeric_column(frame: pd.DataFrame, column: str, path: Path) -> pd.Series:
    values = pd.to_numeric(frame[column].replace("", pd.NA), errors="coerce")
    invalid = values.isna() | (values < 0)
    if invalid.any():
        rows = ", ".join(str(index + 2) for index in frame.index[invalid.to_numpy()][:5])
        raise DataLoadError(path, f"column '{column}' has missing or negative values (lines {rows})")
    return values.astype(float)


def _normalize_severity(value: Any, default: str) -> Severity:
    text = (_optional_text(value) or default).title()
    if text not in SEVERITY_NAMES:
        text = default
    return text  # type: ignore[return-value]


def load_issue_types(path: Path) -> list[IssueTypeRecord]:
    """Load the (category, subcategory) -> effort/impact reference table."""
    frame = _normalize(_read_csv(path), TYPES_COLUMNS, path)
    effort = _numeric_column(frame, "effort_per_issue", path)
    impact = _numeric_column(frame, "impact_per_day", path)

    records: list[IssueTypeRecord] = []
    seen: set[tuple[str, str | None]] = set()
    for index, row in frame.iterrows():
        category = _optional_text(row["category"])
        if category is None:
            raise DataLoadError(path, f"blank category on line {int(index) + 2}")
        record = IssueTypeRecord(
            category=category,
            subcategory=_optional_text(row["subcategory"]),
            effort_per_issue=float(effort[index]),
            impact_per_day=float(impact[index]),
        )
        if record.key in seen:
            raise DataLoadError(path, f"duplicate reference row for {record.key}")
        seen.add(record.key)
        records.append(record)

    LOGGER.info("Loaded %d issue type definitions from %s", len(records), path.name)
    return records


def load_summary(path: Path) -> list[SummaryRecord]:
    """Load the dated per-(category, subcategory) observation buckets."""
    frame = _normalize(_read_csv(path), SUMMARY_COLUMNS, path)
    dates = pd.to_datetime(frame["date"].replace("", pd.NA), errors="coerce")
    if dates.isna().any():
        rows = ", ".join(str(index + 2) for index in frame.index[dates.isna().to_numpy()][:5])
        raise DataLoadError(path, f"invalid dates on lines {rows}")
    counts = _numeric_column(frame, "count", path)
    fractional = counts % 1 != 0
    if fractional.any():
        rows = ", ".join(str(index + 2) for index in frame.index[fractional.to_numpy()][:5])
        raise DataLoadError(path, f"column 'count' has non-integer values (lines {rows})")
    days = _numeric_column(frame, "days_to_fix", path)

    records: list[SummaryRecord] = []
    for index, row in frame.iterrows():
        category = _optional_text(row["category"])
        if category is None:
            raise DataLoadError(path, f"blank category on line {int(index) + 2}")
        records.append(
            SummaryRecord(
                date=dates[index].date(),
                category=category,
                subcategory=_optional_text(row["subcategory"]),
                count=int(counts[index]),
                days_to_fix=float(days[index]),
            )
        )

    LOGGER.info("Loaded %d summary records from %s", len(records), path.name)
    return records


def load_tickets(path: Path) -> pd.DataFrame:
    """Load a ticket export and add a ``created_date`` column for windowing."""
    frame = _normalize(_read_csv(path), TICKET_COLUMNS, path, required=TICKET_REQUIRED_COLUMNS)
    created = pd.to_datetime(frame["created_time"].replace("", pd.NA), errors="coerce")
    frame = frame.loc[created.notna()].copy()
    frame["created_at"] = created[created.notna()]
    frame["created_date"] = frame["created_at"].dt.date
    if frame.empty:
        raise DataLoadError(path, "no rows with a valid created_time")
    LOGGER.info("Loaded %d tickets from %s", len(frame), path.name)
    return frame.reset_index(drop=True)


def _ticket_resolve_hours(row: pd.Series, defaults: TicketDefaults) -> float:
    resolved_text = _optional_text(row.get("resolved_time"))
    if resolved_text is not None:
        resolved = pd.to_datetime(resolved_text, errors="coerce")
        if pd.isna(resolved):
            return defaults.resolve_hours
        return abs((resolved - row["created_at"]).total_seconds()) / 3600.0
    return _number_or_default(row.get("resolution_hours"), defaults.resolve_hours)


def ticket_records(
    frame: pd.DataFrame,
    defaults: TicketDefaults | None = None,
) -> list[RawIssueRecord]:
    """Convert ticket rows into one plotted record per ticket."""
    defaults = defaults or TicketDefaults()
    records: list[RawIssueRecord] = []
    for _, row in frame.iterrows():
        records.append(
            RawIssueRecord(
                category=_optional_text(row.get("category")) or defaults.category,
                sub_category=_optional_text(row.get("sub_category")) or "",
                num_issues=1,
                business_impact=_number_or_default(
                    row.get("business_impact"), defaults.business_impact
                ),
                avg_resolve_time=_ticket_resolve_hours(row, defaults),
                severity=_normalize_severity(row.get("severity"), defaults.severity),
                request_id=_optional_text(row.get("request_id")),
                status=_optional_text(row.get("status")),
            )
        )
    return records


def _number_or_default(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if pd.isna(number) or number == 0:
        return default
    return number


def load_extract(
    path: Path,
    sheet: str = EXTRACT_SUMMARY_SHEET,
    defaults: ExtractDefaults | None = None,
) -> list[RawIssueRecord]:
    """Load one sheet of a pre-extracted workbook JSON (``{sheet: [row, ...]}``)."""
    defaults = defaults or ExtractDefaults()
    if not path.is_file():
        raise DataLoadError(path, "file not found")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DataLoadError(path, f"malformed JSON ({exc})") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get(sheet), list):
        raise DataLoadError(path, f"missing '{sheet}' sheet array")

    records: list[RawIssueRecord] = []
    for row in payload[sheet]:
        if not isinstance(row, dict):
            continue
        fields = {EXTRACT_COLUMNS[key]: value for key, value in row.items() if key in EXTRACT_COLUMNS}
        records.append(
            RawIssueRecord(
                category=_optional_text(fields.get("category")) or defaults.category,
                sub_category=_optional_text(fields.get("sub_category")) or "",
                num_issues=int(_number_or_default(fields.get("num_issues"), defaults.num_issues)),
                business_impact=_number_or_default(
                    fields.get("business_impact"), defaults.business_impact
                ),
                avg_resolve_time=_number_or_default(
                    fields.get("avg_resolve_time"), defaults.avg_resolve_time
                ),
                severity=_normalize_severity(fields.get("severity"), defaults.severity),
            )
        )

    LOGGER.info("Loaded %d '%s' rows from %s", len(records), sheet, path.name)
    return records
