"""
auth/session.py -- Console session (backend token + role) in a signed cookie.

The browser keeps exactly two facts between requests: the backend's bearer
token and the user's role string. Both travel in one httpOnly cookie
("lt_session") whose value is a JWT signed by this console.

Security design decisions:
  Signing: python-jose with HS256 and SECRET_KEY from core.config. A tampered,
       foreign, or expired cookie decodes to the anonymous session -- never an
       exception -- so route guards stay a simple boolean check.

  Role discovery: the backend login response may carry "role" directly. When
       it does not, the role is read from the backend token's claims without
       verifying its signature. The console only uses the role for navigation
       and page gating; the backend re-checks authorization on every call.

  Cookie: httponly + samesite=lax + secure (when SECURE_COOKIES=true), with
       max_age equal to the JWT exp so both expire together.

Layer rule: no imports from api/, web/, or inventory/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("licensetracker.auth")

SESSION_COOKIE = "lt_session"
GUEST = "GUEST"
_ALGORITHM = "HS256"

_settings = get_settings()


@dataclass(frozen=True)
class Session:
    """The console's view of who is logged in."""

    token: Optional[str] = None
    role: str = GUEST

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


ANONYMOUS = Session()


# ---------------------------------------------------------------------------
# Role discovery
# ---------------------------------------------------------------------------


def _first_role(value: Any) -> Optional[str]:
    """Pull a role string out of a claim that may be a string, list, or list of dicts."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, dict):
                item = item.get("authority") or item.get("name") or item.get("role")
            if isinstance(item, str) and item.strip():
                return item.strip()
    return None


def role_from_token(token: str) -> Optional[str]:
    """Read the role from a backend JWT's claims without verifying it.

    Looks at "role", then "roles", then "authorities". Returns None when the
    token is not a JWT or carries none of these.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    for key in ("role", "roles", "authorities"):
        role = _first_role(claims.get(key))
        if role:
            return role
    return None


def resolve_role(token: str, declared_role: Optional[str] = None) -> str:
    """Pick the session role: declared by the login response, else from the token, else GUEST."""
    return (declared_role or "").strip() or role_from_token(token) or GUEST


# ---------------------------------------------------------------------------
# Encode / decode
# ---------------------------------------------------------------------------


def encode_session(token: str, role: str, expire_seconds: int = 0) -> str:
    """Sign a session cookie value carrying the backend token and role."""
    duration = expire_seconds if expire_seconds > 0 else _settings.session_expire_seconds
    payload = {
        "tok": token,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_session(value: Optional[str]) -> Session:
    """Decode a session cookie. Any failure yields the anonymous session."""
    if not value:
        return ANONYMOUS
    try:
        payload = jwt.decode(value, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        logger.debug("Discarding invalid session cookie")
        return ANONYMOUS
    token = payload.get("tok")
    if not isinstance(token, str) or not token:
        return ANONYMOUS
    role = payload.get("role")
    return Session(token=token, role=role if isinstance(role, str) and role else GUEST)


# ---------------------------------------------------------------------------
# Cookie helpers -- the login() / logout() transitions
# ---------------------------------------------------------------------------


def start_session(response, token: str, role: str) -> Session:
    """Persist a new session on the response (the login transition)."""
    response.set_cookie(
        SESSION_COOKIE,
        value=encode_session(token, role),
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.session_expire_seconds,
    )
    return Session(token=token, role=role)


def end_session(response) -> Session:
    """Clear the session cookie (the logout transition). Returns the anonymous session."""
    response.delete_cookie(SESSION_COOKIE)
    return ANONYMOUS
