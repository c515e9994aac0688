"""
formatter.py -- Renders license report rows to CSV for download.
"""

import csv
import io

# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------

REPORT_HEADERS = ["License Key", "Device ID", "Software", "Vendor", "Location", "Expiry"]

# Spreadsheet apps evaluate cells starting with these as formulas (CWE-1236).
_FORMULA_PREFIXES = ("=", "+", "-", "@")


def _sanitize_csv_cell(value) -> str:
    """Prefix formula-like cells with a tab so spreadsheets treat them as text."""
    if value is None:
        return ""
    text = str(value)
    if text.startswith(_FORMULA_PREFIXES):
        return "\t" + text
    return text


def to_csv(rows: list) -> str:
    """Render a list of ReportRow as CSV.

    Columns: License Key, Device ID, Software, Vendor, Location, Expiry
    """
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(REPORT_HEADERS)

    for r in rows:
        writer.writerow(
            [
                _sanitize_csv_cell(r.license_key),
                _sanitize_csv_cell(r.device_id),
                _sanitize_csv_cell(r.software_name),
                _sanitize_csv_cell(r.vendor_name),
                _sanitize_csv_cell(r.location),
                _sanitize_csv_cell(r.expiry_date),
            ]
        )

    return buf.getvalue()
