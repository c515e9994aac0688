"""
inventory/ingest.py -- Device CSV parser for bulk upload.

Normalizes an uploaded CSV into Device records. No external dependencies
beyond stdlib.

Expected header (case-sensitive, extra columns ignored):
  deviceId,deviceName,ipAddress,deviceType,location,model,status

Pipeline:
  uploaded file -> parse_device_csv() -> (devices, errors)
  -> caller: DeviceService.create_device() once per device

Rows missing deviceId or deviceName are reported, not raised. A status
outside DEVICE_STATUSES is reported and the row skipped.
"""

import csv
import io
from dataclasses import dataclass, field

from inventory.models import DEVICE_STATUSES, Device

REQUIRED_COLUMNS = ("deviceId", "deviceName")


@dataclass
class IngestResult:
    """Parsed devices plus per-row problems, in file order."""

    devices: list[Device] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def parse_device_csv(content: str) -> IngestResult:
    """Parse device rows from CSV text.

    Row numbers in error messages count the header as row 1, matching what a
    user sees in a spreadsheet.
    """
    result = IngestResult()
    reader = csv.DictReader(io.StringIO(content.lstrip("\ufeff")))
    header = reader.fieldnames or []
    missing = [c for c in REQUIRED_COLUMNS if c not in header]
    if missing:
        result.errors.append(f"Missing required column(s): {', '.join(missing)}")
        return result

    for line_no, row in enumerate(reader, start=2):
        device_id = (row.get("deviceId") or "").strip()
        name = (row.get("deviceName") or "").strip()
        if not device_id or not name:
            result.errors.append(f"Row {line_no}: deviceId and deviceName are required.")
            continue
        status = (row.get("status") or "ACTIVE").strip().upper() or "ACTIVE"
        if status not in DEVICE_STATUSES:
            result.errors.append(f"Row {line_no}: unknown status '{status[:30]}'.")
            continue
        result.devices.append(
            Device(
                device_id=device_id,
                name=name,
                ip_address=(row.get("ipAddress") or "").strip(),
                device_type=(row.get("deviceType") or "").strip(),
                location=(row.get("location") or "").strip(),
                model=(row.get("model") or "").strip(),
                status=status,
            )
        )
    return result
