"""
tests/conftest.py -- Shared test fixtures for the License Tracker console.

This module provides:
  - RecordingBackend: a BackendClient that never touches the network. It
    returns canned responses keyed by (method, path) and records every call,
    so tests can assert that a form POST made exactly one backend request.
  - _patch_lifespan(): wires a RecordingBackend into app.state.backend,
    bypassing the real startup.
  - backend / web_client / api_client fixtures.
  - login(): puts a signed session cookie for a given role on a client.

Environment variables must be set before any core/auth import so
get_settings() auto-generates SECRET_KEY (DEBUG), accepts the TestClient's
"testserver" Host header, and leaves rate limiting off.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

# CRITICAL: set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["*"]')
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.session import SESSION_COOKIE, encode_session
from inventory.client import BackendClient, BackendError
from web.routes import router as web_router

# Mount the web router once. asgi.py does this in production; importing it
# here would also work but keeps the test app assembly explicit.
if not any(getattr(r, "path", None) == "/dashboard" for r in app.routes):
    app.include_router(web_router, tags=["Web UI"])


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------


@dataclass
class Call:
    method: str
    path: str
    token: Optional[str]
    params: Optional[dict]
    json: Any


class RecordingBackend(BackendClient):
    """BackendClient double. Register responses with on(); inspect calls afterwards.

    A registered value that is an Exception instance is raised; a callable is
    invoked with the Call; anything else is returned as the decoded body.
    Unregistered requests return None (an empty 2xx body).
    """

    def __init__(self) -> None:
        super().__init__("http://backend.test")
        self.responses: dict[tuple[str, str], Any] = {}
        self.calls: list[Call] = []
        self.reachable = True

    def on(self, method: str, path: str, value: Any) -> "RecordingBackend":
        self.responses[(method.upper(), path)] = value
        return self

    def request(self, method, path, token=None, params=None, json=None, files=None):
        call = Call(method.upper(), path, token, params, json)
        self.calls.append(call)
        value = self.responses.get((call.method, path))
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(call)
        return value

    def ping(self) -> bool:
        return self.reachable

    def mutations(self) -> list[Call]:
        """Calls that change backend state (anything but GET)."""
        return [c for c in self.calls if c.method != "GET"]


def backend_error(message: Optional[str] = "Boom", status_code: Optional[int] = 400) -> BackendError:
    return BackendError(message, status_code=status_code)


def _patch_lifespan(backend: RecordingBackend):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.backend = backend
        yield

    return test_lifespan


def login(client: TestClient, role: str = "ROLE_ADMIN", token: str = "backend-token") -> None:
    """Give the client an authenticated console session."""
    client.cookies.set(SESSION_COOKIE, encode_session(token, role))


# ---------------------------------------------------------------------------
# Fixtures -- one TestClient per test so cookies and flashes never leak
# ---------------------------------------------------------------------------


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def web_client(backend: RecordingBackend) -> Generator[TestClient, None, None]:
    """TestClient for web routes.

    follow_redirects=False is essential: tests assert on redirect locations
    (e.g. 302 to /auth?next=...), which disappear once a redirect is followed.
    """
    app.router.lifespan_context = _patch_lifespan(backend)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def admin_client(web_client: TestClient) -> TestClient:
    """web_client already logged in as ROLE_ADMIN."""
    login(web_client, "ROLE_ADMIN")
    return web_client


@pytest.fixture
def api_client(backend: RecordingBackend) -> Generator[TestClient, None, None]:
    """TestClient for the JSON API. Follows redirects like a normal API consumer."""
    app.router.lifespan_context = _patch_lifespan(backend)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
