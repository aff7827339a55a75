from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from impact_bubbles.io.read import (
    DataLoadError,
    load_extract,
    load_issue_types,
    load_summary,
    load_tickets,
    ticket_records,
)
from impact_bubbles.io.schema import TicketDefaults


def _write(path: Path, lines: list[str]) -> Path:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_load_issue_types_normalizes_blank_subcategory(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "types.csv",
        [
            "Category, Subcategory, Effort_Per_Issue, Impact_Per_Day",
            "Network, Outage, 5000, 2000",
            "Hardware,,300,80",
        ],
    )

    records = load_issue_types(path)

    assert [record.key for record in records] == [("Network", "Outage"), ("Hardware", None)]
    assert records[0].effort_per_issue == 5000.0
    assert records[1].impact_per_day == 80.0


def test_load_issue_types_rejects_duplicate_keys(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "types.csv",
        [
            "Category,Subcategory,Effort_Per_Issue,Impact_Per_Day",
            "Network,Outage,5000,2000",
            "Network,Outage,4000,1000",
        ],
    )

    with pytest.raises(DataLoadError, match="duplicate"):
        load_issue_types(path)


def test_missing_file_raises_data_load_error(tmp_path: Path) -> None:
    missing = tmp_path / "absent.csv"

    with pytest.raises(DataLoadError) as excinfo:
        load_summary(missing)

    assert isinstance(excinfo.value, ValueError)
    assert excinfo.value.path == missing
    assert "file not found" in str(excinfo.value)


def test_missing_columns_raise_data_load_error(tmp_path: Path) -> None:
    path = _write(tmp_path / "types.csv", ["Category,Effort_Per_Issue", "Network,5000"])

    with pytest.raises(DataLoadError, match="Missing required columns"):
        load_issue_types(path)


def test_load_summary_parses_dates_and_counts(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "summary.csv",
        [
            "Date,Category,Subcategory,Count,Days_To_Fix",
            "2024-01-01,Network,Outage,3,2",
            "2024-01-02,Network,,5,4.5",
        ],
    )

    records = load_summary(path)

    assert records[0].date == date(2024, 1, 1)
    assert records[0].count == 3
    assert records[1].subcategory is None
    assert records[1].days_to_fix == 4.5


def test_load_summary_rejects_negative_counts(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "summary.csv",
        [
            "Date,Category,Subcategory,Count,Days_To_Fix",
            "2024-01-01,Network,Outage,-1,2",
        ],
    )

    with pytest.raises(DataLoadError, match="count"):
        load_summary(path)


def test_load_summary_rejects_fractional_counts(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "summary.csv",
        [
            "Date,Category,Subcategory,Count,Days_To_Fix",
            "2024-01-01,Network,Outage,3,2",
            "2024-01-02,Network,Outage,2.7,1",
        ],
    )

    with pytest.raises(DataLoadError, match=r"non-integer values \(lines 3\)"):
        load_summary(path)


def test_load_summary_rejects_bad_dates(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "summary.csv",
        [
            "Date,Category,Subcategory,Count,Days_To_Fix",
            "not-a-date,Network,Outage,1,2",
        ],
    )

    with pytest.raises(DataLoadError, match="invalid dates"):
        load_summary(path)


def test_ticket_records_apply_defaults_and_durations(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "tickets.csv",
        [
            "created_time,resolved_time,resolution_hours,category,sub_category,"
            "est_per_day_cost_usd,severity,RequestID,request_status",
            "2024-01-01 08:00:00,2024-01-02 10:00:00,,Network,VPN,2500,High,REQ-1,Closed",
            "2024-01-01 09:00:00,,6,,,,,REQ-2,Open",
            "2024-01-03 09:00:00,,,Hardware,Laptop,0,low,,",
        ],
    )

    frame = load_tickets(path)
    records = ticket_records(frame)

    assert list(frame["created_date"]) == [date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 3)]
    first, second, third = records
    assert first.avg_resolve_time == pytest.approx(26.0)
    assert first.business_impact == 2500.0
    assert first.severity == "High"
    assert first.request_id == "REQ-1"
    assert first.num_issues == 1

    assert second.category == "Unknown"
    assert second.business_impact == 1000.0
    assert second.avg_resolve_time == 6.0
    assert second.severity == "Medium"
    assert second.status == "Open"

    assert third.avg_resolve_time == TicketDefaults().resolve_hours
    assert third.business_impact == 1000.0
    assert third.severity == "Low"
    assert third.request_id is None


def test_load_tickets_requires_created_time(tmp_path: Path) -> None:
    path = _write(tmp_path / "tickets.csv", ["category,severity", "Network,High"])

    with pytest.raises(DataLoadError, match="created_time"):
        load_tickets(path)


def test_load_extract_maps_sheet_columns(tmp_path: Path) -> None:
    path = tmp_path / "extract.json"
    path.write_text(
        json.dumps(
            {
                "Summary": [
                    {
                        "category": "SAP",
                        "sub_category": "Posting",
                        "# of issues": 145,
                        "est per-day business impact (USD)": 26000,
                        "avg time to resolve (hours)": 71.0,
                        "severity_mode": "High",
                    },
                    {
                        "category": None,
                        "# of issues": None,
                        "est per-day business impact (USD)": None,
                        "avg time to resolve (hours)": None,
                        "severity_mode": None,
                    },
                ]
            }
        ),
        encoding="utf-8",
    )

    records = load_extract(path)

    assert records[0].num_issues == 145
    assert records[0].business_impact == 26000.0
    assert records[0].sub_category == "Posting"
    assert records[1].category == "Unknown"
    assert records[1].num_issues == 0
    assert records[1].business_impact == 0.0
    assert records[1].severity == "Low"


def test_load_extract_requires_sheet(tmp_path: Path) -> None:
    path = tmp_path / "extract.json"
    path.write_text(json.dumps({"Other": []}), encoding="utf-8")

    with pytest.raises(DataLoadError, match="Summary"):
        load_extract(path)


def test_load_extract_rejects_malformed_json(tmp_path: Path) -> None:
    path = tmp_path / "extract.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(DataLoadError, match="malformed JSON"):
        load_extract(path)
