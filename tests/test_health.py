"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - components.backend reflects whether the license service answers
  - no session required
"""

from __future__ import annotations


def test_health_returns_200_with_components(api_client, backend):
    resp = api_client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"] == {"app": "ok", "backend": "ok"}


def test_health_degraded_when_backend_unreachable(api_client, backend):
    backend.reachable = False
    data = api_client.get("/api/v1/health").json()
    assert data["status"] == "degraded"
    assert data["components"]["backend"] == "unreachable"


def test_health_no_auth_required(api_client):
    resp = api_client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_unknown_route_uses_error_envelope(api_client):
    resp = api_client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"


def test_wrong_method_uses_error_envelope(api_client):
    resp = api_client.post("/api/v1/health")
    assert resp.status_code == 405
    assert resp.json()["error"] == {"code": "http_405", "message": "Method Not Allowed", "detail": None}
