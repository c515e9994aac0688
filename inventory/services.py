"""
inventory/services.py -- One service per backend resource.

Pattern: Repository + Data Mapper. Each service exposes domain-level
operations (list_devices, create_license, ...) and hides the HTTP shape of
the backend. The _to_* functions map camelCase JSON into inventory.models
dataclasses; the _*_payload functions map back.

Services are cheap: construct one per request with the shared BackendClient
and the caller's session token:
    DeviceService(request.app.state.backend, session.token).list_devices()

Each mutating method makes exactly one backend call. Business preconditions
that need no backend data (e.g. "only DECOMMISSIONED devices may be deleted")
are checked by the caller before invoking the service.

Layer rule: no imports from api/, web/, or auth/.
"""

from __future__ import annotations

from typing import Any, Optional

from inventory.client import BackendClient
from inventory.models import (
    Assignment,
    AuditLog,
    DashboardMetrics,
    Device,
    License,
    LicenseAlert,
    LoginResult,
    ReportRow,
    Software,
    SoftwareStatus,
    User,
    Vendor,
)

# ---------------------------------------------------------------------------
# Mapping helpers
# ---------------------------------------------------------------------------


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_list(payload: Any) -> list[dict]:
    """Accept a bare JSON array or a Spring-style page ({"content": [...]})."""
    if isinstance(payload, list):
        return [p for p in payload if isinstance(p, dict)]
    if isinstance(payload, dict) and isinstance(payload.get("content"), list):
        return [p for p in payload["content"] if isinstance(p, dict)]
    return []


def _as_count(payload: Any) -> int:
    """Normalise a count endpoint that may return a number, a list, or {"count": n}."""
    if isinstance(payload, bool):
        return int(payload)
    if isinstance(payload, (int, float)):
        return int(payload)
    if isinstance(payload, list):
        return len(payload)
    if isinstance(payload, dict):
        return _opt_int(payload.get("count")) or 0
    return _opt_int(payload) or 0


def _drop_empty(params: dict[str, Any]) -> dict[str, Any]:
    """Return only the filters that carry a value."""
    return {k: v for k, v in params.items() if v not in (None, "")}


def _to_device(d: dict) -> Device:
    return Device(
        device_id=_str(d.get("deviceId")),
        name=_str(d.get("deviceName")),
        ip_address=_str(d.get("ipAddress")),
        device_type=_str(d.get("deviceType")),
        location=_str(d.get("location")),
        model=_str(d.get("model")),
        status=_str(d.get("status")) or "ACTIVE",
    )


def _device_payload(device: Device) -> dict:
    return {
        "deviceId": device.device_id,
        "deviceName": device.name,
        "ipAddress": device.ip_address,
        "deviceType": device.device_type,
        "location": device.location,
        "model": device.model,
        "status": device.status,
    }


def _to_license(d: dict) -> License:
    return License(
        license_key=_str(d.get("licenseKey")),
        vendor=_str(d.get("vendor") or d.get("vendorName")),
        software_name=_str(d.get("softwareName")),
        license_type=_str(d.get("licenseType")) or "PER_DEVICE",
        valid_from=d.get("validFrom"),
        valid_to=d.get("validTo"),
        max_usage=_opt_int(d.get("maxUsage")),
        notes=_str(d.get("notes")),
    )


def _license_payload(lic: License) -> dict:
    return {
        "licenseKey": lic.license_key,
        "vendor": lic.vendor,
        "softwareName": lic.software_name,
        "licenseType": lic.license_type,
        "validFrom": lic.valid_from,
        "validTo": lic.valid_to,
        "maxUsage": lic.max_usage,
        "notes": lic.notes,
    }


def _to_assignment(d: dict) -> Assignment:
    return Assignment(
        assignment_id=_opt_int(d.get("assignmentId") or d.get("id")),
        device_id=_str(d.get("deviceId")),
        license_key=_str(d.get("licenseKey") or d.get("licenseId")),
        assigned_on=d.get("assignedOn"),
    )


def _to_vendor(d: dict) -> Vendor:
    return Vendor(
        vendor_id=_opt_int(d.get("vendorId")),
        name=_str(d.get("vendorName")),
        support_email=_str(d.get("supportEmail")),
    )


def _vendor_payload(vendor: Vendor) -> dict:
    return {"vendorName": vendor.name, "supportEmail": vendor.support_email}


def _to_software(d: dict) -> Software:
    return Software(
        software_id=_opt_int(d.get("id") or d.get("softwareId")),
        name=_str(d.get("softwareName")),
        current_version=_str(d.get("currentVersion")),
        latest_version=_str(d.get("latestVersion")),
        status=_str(d.get("status")) or "INSTALLED",
        last_checked=d.get("lastChecked"),
    )


def _software_payload(sw: Software) -> dict:
    return {
        "softwareName": sw.name,
        "currentVersion": sw.current_version,
        "latestVersion": sw.latest_version,
        "status": sw.status,
        "lastChecked": sw.last_checked,
    }


def _to_user(d: dict) -> User:
    return User(
        user_id=_opt_int(d.get("userId") or d.get("id")),
        name=_str(d.get("name") or d.get("username")),
        email=_str(d.get("email")),
        role=_str(d.get("role")),
    )


def _to_audit_log(d: dict) -> AuditLog:
    return AuditLog(
        log_id=_opt_int(d.get("logId")) or 0,
        user_id=_str(d.get("userId")),
        action=_str(d.get("action")),
        entity_type=_str(d.get("entityType")),
        entity_id=_str(d.get("entityId")),
        details=_str(d.get("details")),
        timestamp=_str(d.get("timestamp")),
    )


def _to_alert(d: dict) -> LicenseAlert:
    return LicenseAlert(
        license_key=_str(d.get("licenseKey")),
        software_name=_str(d.get("softwareName")),
        vendor=_str(d.get("vendor") or d.get("vendorName")),
        valid_to=d.get("validTo"),
        devices_used=_opt_int(d.get("devicesUsed")) or 0,
    )


def _to_report_row(d: dict) -> ReportRow:
    return ReportRow(
        license_key=_str(d.get("licenseKey")),
        device_id=_str(d.get("deviceId")),
        software_name=_str(d.get("softwareName")),
        vendor_name=_str(d.get("vendorName")),
        location=_str(d.get("location")),
        expiry_date=d.get("expiryDate"),
    )


def _to_software_status(d: dict) -> SoftwareStatus:
    return SoftwareStatus(
        software_name=_str(d.get("softwareName")),
        current_version=_str(d.get("currentVersion")),
        latest_version=_str(d.get("latestVersion")),
        status=_str(d.get("status")),
    )


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class _Service:
    """Binds a BackendClient to the caller's bearer token."""

    def __init__(self, client: BackendClient, token: Optional[str] = None) -> None:
        self._client = client
        self._token = token

    def _get(self, path: str, params: Optional[dict] = None) -> Any:
        return self._client.get(path, token=self._token, params=params)

    def _post(self, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        return self._client.post(path, token=self._token, json=json, params=params)

    def _put(self, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        return self._client.put(path, token=self._token, json=json, params=params)

    def _delete(self, path: str) -> Any:
        return self._client.delete(path, token=self._token)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class AuthService(_Service):
    """Login and signup against the backend's /api/auth endpoints."""

    def login(self, email: str, password: str) -> LoginResult:
        data = self._post("/api/auth/login", json={"email": email, "password": password})
        if isinstance(data, str):
            return LoginResult(token=data)
        data = data or {}
        return LoginResult(
            token=_str(data.get("token") or data.get("accessToken")),
            role=data.get("role") or None,
            redirect_url=data.get("redirectUrl") or None,
        )

    def signup(self, username: str, email: str, password: str, mobile: Optional[str] = None) -> None:
        payload = {"username": username, "email": email, "password": password}
        if mobile:
            payload["mobile"] = mobile
        self._post("/api/auth/signup", json=payload)


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


class DeviceService(_Service):
    def list_devices(self) -> list[Device]:
        return [_to_device(d) for d in _as_list(self._get("/devices"))]

    def get_device(self, device_id: str) -> Device:
        return _to_device(self._get(f"/devices/{device_id}") or {})

    def search_devices(self, ip_address: str = "", location: str = "") -> list[Device]:
        params = _drop_empty({"ipAddress": ip_address, "location": location})
        return [_to_device(d) for d in _as_list(self._get("/devices/search", params=params))]

    def list_locations(self) -> list[str]:
        return sorted({_str(v) for v in (self._get("/devices/locations") or []) if v})

    def list_ip_addresses(self) -> list[str]:
        return sorted({_str(v) for v in (self._get("/devices/ipaddresses") or []) if v})

    def create_device(self, device: Device) -> None:
        self._post("/devices", json=_device_payload(device))

    def update_device(self, device: Device) -> None:
        self._put(f"/devices/{device.device_id}", json=_device_payload(device))

    def update_status(self, device_id: str, status: str) -> None:
        self._put(f"/devices/{device_id}/status", params={"status": status})

    def delete_device(self, device_id: str) -> None:
        self._delete(f"/devices/{device_id}")

    def software_status(self, device_id: str) -> list[SoftwareStatus]:
        payload = self._get(f"/devices/{device_id}/software")
        if isinstance(payload, dict) and "softwareName" in payload:
            payload = [payload]
        return [_to_software_status(d) for d in _as_list(payload)]

    def renew_software(self, device_id: str) -> None:
        self._post(f"/devices/{device_id}/software/renew")


# ---------------------------------------------------------------------------
# Licenses and assignments
# ---------------------------------------------------------------------------


class LicenseService(_Service):
    def list_licenses(self) -> list[License]:
        return [_to_license(d) for d in _as_list(self._get("/licenses"))]

    def get_license(self, license_key: str) -> License:
        return _to_license(self._get(f"/licenses/{license_key}") or {})

    def search_licenses(self, vendor: str = "", software: str = "") -> list[License]:
        params = _drop_empty({"vendor": vendor, "software": software})
        return [_to_license(d) for d in _as_list(self._get("/licenses/search", params=params))]

    def create_license(self, lic: License) -> None:
        self._post("/licenses", json=_license_payload(lic))

    def update_license(self, lic: License) -> None:
        self._put(f"/licenses/{lic.license_key}", json=_license_payload(lic))

    def renew_license(self, license_key: str, valid_to: str) -> None:
        """Extend a license. Sends only the new validTo."""
        self._put(f"/licenses/{license_key}", json={"validTo": valid_to})

    def delete_license(self, license_key: str) -> None:
        self._delete(f"/licenses/{license_key}")


class AssignmentService(_Service):
    def for_device(self, device_id: str) -> list[Assignment]:
        return [_to_assignment(d) for d in _as_list(self._get(f"/assignments/device/{device_id}"))]

    def for_license(self, license_key: str) -> list[Assignment]:
        return [_to_assignment(d) for d in _as_list(self._get(f"/assignments/license/{license_key}"))]

    def usage(self, license_key: str) -> int:
        return _as_count(self._get(f"/assignments/usage/{license_key}"))

    def assign(self, device_id: str, license_key: str) -> None:
        self._post("/assignments", json={"deviceId": device_id, "licenseId": license_key})


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class VendorService(_Service):
    def list_vendors(self) -> list[Vendor]:
        return [_to_vendor(d) for d in _as_list(self._get("/vendors"))]

    def get_vendor(self, vendor_id: int) -> Vendor:
        return _to_vendor(self._get(f"/vendors/{vendor_id}") or {})

    def create_vendor(self, vendor: Vendor) -> None:
        self._post("/vendors", json=_vendor_payload(vendor))

    def update_vendor(self, vendor: Vendor) -> None:
        self._put(f"/vendors/{vendor.vendor_id}", json=_vendor_payload(vendor))

    def delete_vendor(self, vendor_id: int) -> None:
        self._delete(f"/vendors/{vendor_id}")


class SoftwareService(_Service):
    def list_software(self) -> list[Software]:
        return [_to_software(d) for d in _as_list(self._get("/software"))]

    def get_software(self, software_id: int) -> Software:
        return _to_software(self._get(f"/software/{software_id}") or {})

    def create_software(self, sw: Software) -> None:
        self._post("/software", json=_software_payload(sw))

    def update_software(self, sw: Software) -> None:
        self._put(f"/software/{sw.software_id}", json=_software_payload(sw))

    def delete_software(self, software_id: int) -> None:
        self._delete(f"/software/{software_id}")


# ---------------------------------------------------------------------------
# Users, roles, audit
# ---------------------------------------------------------------------------


class UserService(_Service):
    def list_users(self) -> list[User]:
        return [_to_user(d) for d in _as_list(self._get("/users"))]

    def create_user(self, name: str, email: str, password: str, role: str) -> None:
        self._post("/users", json={"name": name, "email": email, "password": password, "role": role})

    def update_role(self, user_id: int, role: str) -> None:
        self._put(f"/users/{user_id}/role", json={"role": role})

    def delete_user(self, user_id: int) -> None:
        self._delete(f"/users/{user_id}")


class RoleService(_Service):
    def list_roles(self) -> list[str]:
        payload = self._get("/roles") or []
        roles: list[str] = []
        for item in payload if isinstance(payload, list) else []:
            name = item.get("name") if isinstance(item, dict) else item
            if name:
                roles.append(_str(name))
        return roles


class AuditLogService(_Service):
    def list_logs(
        self,
        start_date: str = "",
        end_date: str = "",
        user_id: str = "",
        entity_type: str = "",
    ) -> list[AuditLog]:
        params = _drop_empty(
            {"startDate": start_date, "endDate": end_date, "userId": user_id, "entityType": entity_type}
        )
        return [_to_audit_log(d) for d in _as_list(self._get("/auditlogs", params=params))]


# ---------------------------------------------------------------------------
# Alerts, dashboard, reports
# ---------------------------------------------------------------------------


class AlertService(_Service):
    def expiring(self, days: int) -> list[LicenseAlert]:
        return [_to_alert(d) for d in _as_list(self._get("/alerts", params={"days": days}))]


class DashboardService(_Service):
    def metrics(self, days: int = 30) -> DashboardMetrics:
        """Fetch the headline counts, the expiring-license table and devices at risk."""
        raw = self._get("/dashboard/metrics")
        if not isinstance(raw, dict):
            raw = {}
        expiring = self._get("/dashboard/expiring-licenses", params={"days": days})
        at_risk = self._get("/dashboard/devices-at-risk", params={"days": days})
        return DashboardMetrics(
            total_devices=_opt_int(raw.get("totalDevices")) or 0,
            total_licenses=_opt_int(raw.get("totalLicenses")) or 0,
            licenses_expiring_soon=_opt_int(raw.get("licensesExpiringSoon")) or 0,
            devices_at_risk=_as_count(at_risk),
            expiring_licenses=[_to_alert(d) for d in _as_list(expiring)],
        )


class ReportService(_Service):
    def license_report(self, vendor: str = "", software: str = "", location: str = "") -> list[ReportRow]:
        params = _drop_empty({"vendor": vendor, "software": software, "location": location})
        return [_to_report_row(d) for d in _as_list(self._get("/reports/licenses", params=params))]


# ---------------------------------------------------------------------------
# AI assistant
# ---------------------------------------------------------------------------


class AIService(_Service):
    def query(self, session_id: str, query: str, scope: str = "", location: str = "") -> str:
        """Send one question to the summarization endpoint and return its answer text."""
        payload = {
            "sessionId": session_id,
            "query": query,
            "filters": _drop_empty({"scope": scope, "location": location}),
        }
        data = self._post("/ai/query", json=payload)
        if isinstance(data, dict):
            return _str(data.get("botResponse"))
        return _str(data)
