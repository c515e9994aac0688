"""
tests/test_csv_formula_injection.py -- Regression tests for CSV formula injection (CWE-1236).

Security background: spreadsheet applications interpret cells that start with
=, +, -, or @ as formulas. License keys, software names and locations come from
user-editable backend records, so a value like =HYPERLINK(...) typed into a
license form would execute when someone opens the exported report.

Mitigation: tab-prefix sanitization in core.formatter.to_csv(). A cell that
starts with a dangerous character is prefixed with \t so the spreadsheet
treats it as text.
"""

import csv
import io
from typing import Optional

import pytest

from core.formatter import REPORT_HEADERS, to_csv
from inventory.models import ReportRow


def _export(location: Optional[str]) -> list[list[str]]:
    row = ReportRow(
        license_key="K-1",
        device_id="D-1",
        software_name="IOS",
        vendor_name="Cisco",
        location=location,
        expiry_date="2025-01-01",
    )
    return list(csv.reader(io.StringIO(to_csv([row]))))


def _location_cell(location: Optional[str]) -> str:
    rows = _export(location)
    assert len(rows) == 2, f"Expected header + 1 data row, got {len(rows)} rows"
    return rows[1][4]


@pytest.mark.parametrize("payload", ["=CMD|'/C calc'", "+1+1", "-1+1", "@SUM(A1)"])
def test_formula_prefix_sanitized(payload: str) -> None:
    cell = _location_cell(payload)
    assert cell == "\t" + payload, f"CSV injection: location cell not neutralized -- got: {cell!r}"


def test_safe_text_unchanged() -> None:
    assert _location_cell("Pune DC-2") == "Pune DC-2"


def test_missing_value_is_empty_cell() -> None:
    assert _location_cell(None) == ""


def test_header_row() -> None:
    assert _export("Pune")[0] == REPORT_HEADERS


def test_columns_in_order() -> None:
    assert _export("Pune")[1] == ["K-1", "D-1", "IOS", "Cisco", "Pune", "2025-01-01"]
