"""
inventory/models.py -- Domain dataclasses for the license inventory.

These are pure data containers with zero logic. The backend owns every
record's lifecycle; inventory/services.py maps its camelCase JSON onto these
and back. Expiry arithmetic lives in core/licensing.py.

Dates are kept as ISO 8601 strings ("YYYY-MM-DD") exactly as the backend
sends them. core.licensing.parse_date() turns them into date objects where
arithmetic is needed.
"""

from dataclasses import dataclass, field
from typing import Optional

DEVICE_STATUSES = ["ACTIVE", "MAINTENANCE", "OBSOLETE", "DECOMMISSIONED"]
LICENSE_TYPES = ["PER_DEVICE", "PER_USER", "PER_SERVER"]
SOFTWARE_STATUSES = ["INSTALLED", "OUTDATED", "MAINTENANCE", "UNAVAILABLE"]
AUDIT_ENTITY_TYPES = ["License", "Device", "User", "Assignment"]


@dataclass
class Device:
    """A tracked network device.

    Only a DECOMMISSIONED device may be deleted; the console enforces this
    before sending the DELETE.
    """

    device_id: str
    name: str = ""
    ip_address: str = ""
    device_type: str = ""
    location: str = ""
    model: str = ""
    status: str = "ACTIVE"  # "ACTIVE" | "MAINTENANCE" | "OBSOLETE" | "DECOMMISSIONED"


@dataclass
class License:
    """A purchased software license. license_key is immutable once created."""

    license_key: str
    vendor: str = ""
    software_name: str = ""
    license_type: str = "PER_DEVICE"  # "PER_DEVICE" | "PER_USER" | "PER_SERVER"
    valid_from: Optional[str] = None
    valid_to: Optional[str] = None
    max_usage: Optional[int] = None
    notes: str = ""


@dataclass
class Assignment:
    """A license installed on a device."""

    device_id: str
    license_key: str
    assignment_id: Optional[int] = None
    assigned_on: Optional[str] = None


@dataclass
class Vendor:
    name: str
    support_email: str = ""
    vendor_id: Optional[int] = None


@dataclass
class Software:
    """A software product in the catalog with its installed and latest versions."""

    name: str
    current_version: str = ""
    latest_version: str = ""
    status: str = "INSTALLED"  # "INSTALLED" | "OUTDATED" | "MAINTENANCE" | "UNAVAILABLE"
    last_checked: Optional[str] = None
    software_id: Optional[int] = None


@dataclass
class User:
    """A console user as the backend describes it. role carries the ROLE_ prefix."""

    name: str
    email: str
    role: str
    user_id: Optional[int] = None


@dataclass
class AuditLog:
    """Append-only audit trail entry. Never updated or deleted."""

    log_id: int
    user_id: str = ""
    action: str = ""
    entity_type: str = ""
    entity_id: str = ""
    details: str = ""
    timestamp: str = ""


@dataclass
class LicenseAlert:
    """A license inside the requested look-ahead window."""

    license_key: str
    software_name: str = ""
    vendor: str = ""
    valid_to: Optional[str] = None
    devices_used: int = 0


@dataclass
class ReportRow:
    """One license-to-device assignment line in the license report."""

    license_key: str
    device_id: str = ""
    software_name: str = ""
    vendor_name: str = ""
    location: str = ""
    expiry_date: Optional[str] = None


@dataclass
class SoftwareStatus:
    """Installed-vs-latest version state for one product on one device."""

    software_name: str
    current_version: str = ""
    latest_version: str = ""
    status: str = ""


@dataclass
class DashboardMetrics:
    total_devices: int = 0
    total_licenses: int = 0
    licenses_expiring_soon: int = 0
    devices_at_risk: int = 0
    expiring_licenses: list[LicenseAlert] = field(default_factory=list)


@dataclass
class LoginResult:
    """Outcome of a successful backend login."""

    token: str
    role: Optional[str] = None
    redirect_url: Optional[str] = None
