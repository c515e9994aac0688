"""
tests/test_reports_csv.py -- Reports screen and CSV export.
"""

from __future__ import annotations

import csv
import io
from datetime import timedelta

import pytest
from conftest import RecordingBackend, backend_error, login
from fastapi.testclient import TestClient

from core.config import today


@pytest.fixture
def client(web_client: TestClient) -> TestClient:
    login(web_client, "ROLE_COMPLIANCE_OFFICER")
    return web_client


def _rows(backend: RecordingBackend) -> None:
    backend.on(
        "GET",
        "/reports/licenses",
        [
            {
                "licenseKey": "K-1",
                "deviceId": "D-1",
                "softwareName": "IOS",
                "vendorName": "Cisco",
                "location": "Pune",
                "expiryDate": (today() - timedelta(days=1)).isoformat(),
            },
            {
                "licenseKey": "K-2",
                "deviceId": "D-2",
                "softwareName": "Office",
                "vendorName": "Microsoft",
                "location": "=HYPERLINK(\"http://x\")",
                "expiryDate": (today() + timedelta(days=200)).isoformat(),
            },
        ],
    )


class TestReportsPage:
    def test_totals(self, client: TestClient, backend: RecordingBackend) -> None:
        _rows(backend)
        html = client.get("/reports").text
        assert 'id="report-total">2<' in html
        assert 'id="report-expired">1<' in html

    def test_filters_forwarded(self, client: TestClient, backend: RecordingBackend) -> None:
        client.get("/reports?vendor=Cisco&location=Pune")
        assert backend.calls[0].params == {"vendor": "Cisco", "location": "Pune"}

    def test_filter_options_from_rows(self, client: TestClient, backend: RecordingBackend) -> None:
        _rows(backend)
        html = client.get("/reports?vendor=Adobe").text
        for vendor in ("Adobe", "Cisco", "Microsoft"):
            assert f'<option value="{vendor}"' in html
        assert '<option value="Adobe" selected>' in html

    def test_backend_error(self, client: TestClient, backend: RecordingBackend) -> None:
        backend.on("GET", "/reports/licenses", backend_error(None, 500))
        assert "Failed to fetch report data" in client.get("/reports").text


class TestExport:
    def test_csv_download(self, client: TestClient, backend: RecordingBackend) -> None:
        _rows(backend)
        resp = client.get("/reports/export.csv?vendor=&software=&location=")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["content-disposition"] == 'attachment; filename="license_report.csv"'
        rows = list(csv.reader(io.StringIO(resp.text)))
        assert rows[0] == ["License Key", "Device ID", "Software", "Vendor", "Location", "Expiry"]
        assert rows[1][:5] == ["K-1", "D-1", "IOS", "Cisco", "Pune"]

    def test_formula_cells_neutralized(self, client: TestClient, backend: RecordingBackend) -> None:
        _rows(backend)
        rows = list(csv.reader(io.StringIO(client.get("/reports/export.csv").text)))
        assert rows[2][4].startswith("\t=")

    def test_export_forbidden_role(self, web_client: TestClient, backend: RecordingBackend) -> None:
        login(web_client, "ROLE_NETWORK_ADMIN")
        resp = web_client.get("/reports/export.csv")
        assert resp.status_code == 302
        assert backend.calls == []
