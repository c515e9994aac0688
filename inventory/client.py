"""
inventory/client.py -- HTTP client for the License Tracker REST backend.

One BackendClient is created at startup (api/main.py lifespan) and stored on
app.state.backend. It owns a pooled requests.Session for the process lifetime
and is closed at shutdown.

Every request:
  - joins the path onto BACKEND_URL
  - adds "Authorization: Bearer <token>" when a session token is supplied
  - uses BACKEND_TIMEOUT (no retries -- one attempt per user action)

Failures surface as BackendError. Screens show error.message verbatim when the
backend supplied one and fall back to their own generic text otherwise.

Layer rule: no imports from api/, web/, or auth/.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger("licensetracker.backend")

UNREACHABLE_MESSAGE = "Could not reach the license service."


class BackendError(Exception):
    """A failed backend call.

    message     -- human-readable text from the backend (its "message" field or
                   plain-text body), or None when it gave nothing usable
    status_code -- HTTP status, or None for transport failures
    """

    def __init__(self, message: Optional[str], status_code: Optional[int] = None) -> None:
        super().__init__(message or f"Backend request failed ({status_code})")
        self.message = message
        self.status_code = status_code

    def display(self, fallback: str) -> str:
        """Return the backend's message if it sent one, else the caller's fallback."""
        return self.message or fallback


def _error_message(resp: requests.Response) -> Optional[str]:
    """Extract the most specific error text from a failed response."""
    try:
        payload = resp.json()
    except ValueError:
        text = resp.text.strip()
        return text[:500] or None
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
        return None
    if isinstance(payload, str) and payload:
        return payload
    return None


class BackendClient:
    """Thin wrapper over requests.Session bound to one backend base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        # The backend is a known internal service; a long redirect chain is a misconfiguration.
        self._session.max_redirects = 3

    def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        files: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded body.

        Returns parsed JSON when the response is JSON, the text body otherwise,
        and None for an empty body. Raises BackendError on transport failure
        or any status >= 400.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=json,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Backend %s %s failed: %s", method, path, e)
            raise BackendError(UNREACHABLE_MESSAGE) from e

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning("Backend %s %s returned %d: %s", method, path, resp.status_code, message)
            raise BackendError(message, status_code=resp.status_code)

        if not resp.content:
            return None
        content_type = resp.headers.get("Content-Type", "")
        if "json" in content_type:
            try:
                return resp.json()
            except ValueError:
                return resp.text
        return resp.text

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> Any:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.request("DELETE", path, **kwargs)

    def ping(self) -> bool:
        """Return True if the backend answers at all (any HTTP status)."""
        try:
            self._session.get(self.base_url, timeout=min(self.timeout, 3))
        except requests.RequestException:
            return False
        return True

    def close(self) -> None:
        self._session.close()
