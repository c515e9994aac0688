"""
tests/test_services.py -- inventory/services.py mapping and request shapes.

Uses RecordingBackend from conftest, so each test checks both the HTTP call
a service makes (method, path, params, body, token) and how the backend's
camelCase JSON lands in the dataclasses.
"""

from __future__ import annotations

from conftest import RecordingBackend

from inventory.models import Device, License, Software, Vendor
from inventory.services import (
    AIService,
    AlertService,
    AssignmentService,
    AuditLogService,
    AuthService,
    DashboardService,
    DeviceService,
    LicenseService,
    ReportService,
    RoleService,
    SoftwareService,
    UserService,
    VendorService,
)


def test_login_maps_token_role_and_redirect(backend: RecordingBackend) -> None:
    backend.on("POST", "/api/auth/login", {"token": "t-1", "role": "ROLE_ADMIN", "redirectUrl": "/alerts"})
    result = AuthService(backend).login("a@example.com", "pw")
    assert (result.token, result.role, result.redirect_url) == ("t-1", "ROLE_ADMIN", "/alerts")
    assert backend.calls[0].json == {"email": "a@example.com", "password": "pw"}
    assert backend.calls[0].token is None


def test_login_accepts_bare_token_string(backend: RecordingBackend) -> None:
    backend.on("POST", "/api/auth/login", "raw-token")
    assert AuthService(backend).login("a@example.com", "pw").token == "raw-token"


def test_signup_omits_blank_mobile(backend: RecordingBackend) -> None:
    AuthService(backend).signup("ann", "ann@example.com", "pw")
    assert backend.calls[0].json == {"username": "ann", "email": "ann@example.com", "password": "pw"}


class TestDeviceService:
    def test_list_maps_fields_and_forwards_token(self, backend: RecordingBackend) -> None:
        backend.on(
            "GET",
            "/devices",
            [{"deviceId": "D-1", "deviceName": "Core switch", "ipAddress": "10.0.0.1", "status": "MAINTENANCE"}],
        )
        devices = DeviceService(backend, "tok").list_devices()
        assert devices == [Device(device_id="D-1", name="Core switch", ip_address="10.0.0.1", status="MAINTENANCE")]
        assert backend.calls[0].token == "tok"

    def test_list_accepts_paged_payload(self, backend: RecordingBackend) -> None:
        backend.on("GET", "/devices", {"content": [{"deviceId": "D-9", "deviceName": "AP"}]})
        assert [d.device_id for d in DeviceService(backend).list_devices()] == ["D-9"]

    def test_search_sends_only_non_empty_filters(self, backend: RecordingBackend) -> None:
        DeviceService(backend).search_devices(ip_address="", location="Pune")
        assert backend.calls[0].path == "/devices/search"
        assert backend.calls[0].params == {"location": "Pune"}

    def test_locations_are_distinct_and_sorted(self, backend: RecordingBackend) -> None:
        backend.on("GET", "/devices/locations", ["Pune", "Austin", "Pune", None])
        assert DeviceService(backend).list_locations() == ["Austin", "Pune"]

    def test_create_payload_is_camel_case(self, backend: RecordingBackend) -> None:
        DeviceService(backend).create_device(Device(device_id="D-2", name="Router", location="Lab"))
        call = backend.calls[0]
        assert (call.method, call.path) == ("POST", "/devices")
        assert call.json["deviceId"] == "D-2"
        assert call.json["deviceName"] == "Router"
        assert call.json["status"] == "ACTIVE"

    def test_update_status_uses_query_param(self, backend: RecordingBackend) -> None:
        DeviceService(backend).update_status("D-2", "DECOMMISSIONED")
        call = backend.calls[0]
        assert (call.method, call.path, call.params) == ("PUT", "/devices/D-2/status", {"status": "DECOMMISSIONED"})

    def test_software_status_accepts_single_object(self, backend: RecordingBackend) -> None:
        backend.on("GET", "/devices/D-1/software", {"softwareName": "IOS", "currentVersion": "15.1", "latestVersion": "15.2"})
        [status] = DeviceService(backend).software_status("D-1")
        assert status.software_name == "IOS"
        assert status.latest_version == "15.2"


class TestLicenseService:
    def test_list_maps_dates_and_usage(self, backend: RecordingBackend) -> None:
        backend.on(
            "GET",
            "/licenses",
            [
                {
                    "licenseKey": "K-1",
                    "vendor": "Cisco",
                    "softwareName": "IOS",
                    "licenseType": "PER_DEVICE",
                    "validFrom": "2024-01-01",
                    "validTo": "2025-01-01",
                    "maxUsage": "5",
                }
            ],
        )
        [lic] = LicenseService(backend).list_licenses()
        assert lic.license_key == "K-1"
        assert lic.valid_to == "2025-01-01"
        assert lic.max_usage == 5

    def test_renew_sends_only_valid_to(self, backend: RecordingBackend) -> None:
        LicenseService(backend).renew_license("K-1", "2026-01-02")
        call = backend.calls[0]
        assert (call.method, call.path, call.json) == ("PUT", "/licenses/K-1", {"validTo": "2026-01-02"})

    def test_update_sends_full_record(self, backend: RecordingBackend) -> None:
        LicenseService(backend).update_license(License(license_key="K-1", vendor="Cisco", valid_to="2025-01-01"))
        assert backend.calls[0].json["licenseKey"] == "K-1"
        assert backend.calls[0].json["vendor"] == "Cisco"


class TestAssignmentService:
    def test_usage_accepts_number_or_object(self, backend: RecordingBackend) -> None:
        backend.on("GET", "/assignments/usage/K-1", 3)
        backend.on("GET", "/assignments/usage/K-2", {"count": 7})
        service = AssignmentService(backend)
        assert service.usage("K-1") == 3
        assert service.usage("K-2") == 7

    def test_assign_payload(self, backend: RecordingBackend) -> None:
        AssignmentService(backend).assign("D-1", "K-1")
        assert backend.calls[0].json == {"deviceId": "D-1", "licenseId": "K-1"}


def test_vendor_and_software_round_trip(backend: RecordingBackend) -> None:
    backend.on("GET", "/vendors", [{"vendorId": 4, "vendorName": "Cisco", "supportEmail": "tac@cisco.com"}])
    assert VendorService(backend).list_vendors() == [Vendor(vendor_id=4, name="Cisco", support_email="tac@cisco.com")]

    SoftwareService(backend).update_software(Software(software_id=2, name="IOS", current_version="1", latest_version="2"))
    call = backend.calls[-1]
    assert (call.method, call.path) == ("PUT", "/software/2")
    assert call.json["softwareName"] == "IOS"


def test_users_and_roles(backend: RecordingBackend) -> None:
    backend.on("GET", "/roles", [{"name": "ROLE_ADMIN"}, "ROLE_USER", {}])
    assert RoleService(backend).list_roles() == ["ROLE_ADMIN", "ROLE_USER"]

    UserService(backend).update_role(12, "ROLE_IT_AUDITOR")
    call = backend.calls[-1]
    assert (call.method, call.path, call.json) == ("PUT", "/users/12/role", {"role": "ROLE_IT_AUDITOR"})


def test_audit_log_filters(backend: RecordingBackend) -> None:
    backend.on("GET", "/auditlogs", [{"logId": 1, "action": "CREATE", "entityType": "License", "entityId": "K-1"}])
    [log] = AuditLogService(backend).list_logs(start_date="2024-06-01", entity_type="License")
    assert backend.calls[0].params == {"startDate": "2024-06-01", "entityType": "License"}
    assert (log.log_id, log.action, log.entity_id) == (1, "CREATE", "K-1")


def test_alerts_pass_window(backend: RecordingBackend) -> None:
    backend.on("GET", "/alerts", [{"licenseKey": "K-1", "validTo": "2024-07-01", "devicesUsed": 2}])
    [alert] = AlertService(backend).expiring(60)
    assert backend.calls[0].params == {"days": 60}
    assert alert.devices_used == 2


def test_dashboard_metrics(backend: RecordingBackend) -> None:
    backend.on("GET", "/dashboard/metrics", {"totalDevices": 12, "totalLicenses": 8, "licensesExpiringSoon": 2})
    backend.on("GET", "/dashboard/expiring-licenses", [{"licenseKey": "K-1"}])
    backend.on("GET", "/dashboard/devices-at-risk", [{"deviceId": "D-1"}, {"deviceId": "D-2"}])
    metrics = DashboardService(backend, "tok").metrics(30)
    assert (metrics.total_devices, metrics.total_licenses, metrics.licenses_expiring_soon) == (12, 8, 2)
    assert metrics.devices_at_risk == 2
    assert [a.license_key for a in metrics.expiring_licenses] == ["K-1"]


def test_dashboard_tolerates_empty_metrics(backend: RecordingBackend) -> None:
    metrics = DashboardService(backend).metrics()
    assert metrics.total_devices == 0
    assert metrics.expiring_licenses == []


def test_report_rows(backend: RecordingBackend) -> None:
    backend.on(
        "GET",
        "/reports/licenses",
        [{"licenseKey": "K-1", "deviceId": "D-1", "vendorName": "Cisco", "location": "Pune", "expiryDate": "2024-01-01"}],
    )
    [row] = ReportService(backend).license_report(vendor="Cisco")
    assert backend.calls[0].params == {"vendor": "Cisco"}
    assert (row.vendor_name, row.expiry_date) == ("Cisco", "2024-01-01")


def test_ai_query_payload_and_answer(backend: RecordingBackend) -> None:
    backend.on("POST", "/ai/query", {"botResponse": "3 licenses expire this month."})
    answer = AIService(backend, "tok").query("bot-session-1", "what expires?", "LICENSE", "Pune")
    assert answer == "3 licenses expire this month."
    assert backend.calls[0].json == {
        "sessionId": "bot-session-1",
        "query": "what expires?",
        "filters": {"scope": "LICENSE", "location": "Pune"},
    }


def test_ai_query_sends_only_chosen_filters(backend: RecordingBackend) -> None:
    AIService(backend, "tok").query("bot-session-1", "what expires?", location="Pune")
    AIService(backend, "tok").query("bot-session-1", "and devices?")
    assert [c.json["filters"] for c in backend.calls] == [{"location": "Pune"}, {}]
