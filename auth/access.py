"""
auth/access.py -- Per-route role allow-lists and the navigation guard.

NAV_ITEMS is the single source of truth for both the navigation bar and page
gating: a link is shown exactly when its page would be allowed.

Sub-paths inherit the allow-list of their top-level route, so
/devices/D-1/edit is gated like /devices. Paths not listed here (e.g. /logout)
only require an authenticated session.

The landing route (/dashboard) is open to every authenticated role. Role
denials redirect there, so gating it would loop.

Layer rule: pure functions, stdlib only. No imports from api/, web/, or inventory/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

AUTH_ROUTE = "/auth"
LANDING_ROUTE = "/dashboard"


def _roles(*names: str) -> frozenset[str]:
    return frozenset(f"ROLE_{n}" for n in names)


@dataclass(frozen=True)
class NavItem:
    """A top-level screen. roles=None means any authenticated role."""

    path: str
    label: str
    icon: str
    roles: Optional[frozenset[str]] = None

    def allows(self, role: str) -> bool:
        return self.roles is None or role in self.roles


NAV_ITEMS: tuple[NavItem, ...] = (
    NavItem(LANDING_ROUTE, "Dashboard", "bi-speedometer2"),
    NavItem("/devices", "Devices", "bi-hdd-network", _roles("ADMIN", "NETWORK_ADMIN", "OPERATIONS_MANAGER", "NETWORK_ENGINEER")),
    NavItem("/licenses", "Licenses", "bi-key", _roles("ADMIN", "NETWORK_ADMIN", "PROCUREMENT_OFFICER")),
    NavItem(
        "/alerts",
        "Alerts",
        "bi-bell",
        _roles("ADMIN", "NETWORK_ADMIN", "PROCUREMENT_OFFICER", "COMPLIANCE_OFFICER", "OPERATIONS_MANAGER"),
    ),
    NavItem(
        "/reports",
        "Reports",
        "bi-file-earmark-bar-graph",
        _roles(
            "ADMIN",
            "PROCUREMENT_OFFICER",
            "COMPLIANCE_OFFICER",
            "IT_AUDITOR",
            "SECURITY_HEAD",
            "COMPLIANCE_LEAD",
            "PROCUREMENT_LEAD",
        ),
    ),
    NavItem("/users", "Users", "bi-people", _roles("ADMIN", "SECURITY_HEAD")),
    NavItem("/auditlogs", "Audit Logs", "bi-journal-text", _roles("ADMIN", "IT_AUDITOR", "SECURITY_HEAD")),
    NavItem("/software", "Software", "bi-box-seam", _roles("ADMIN", "OPERATIONS_MANAGER", "NETWORK_ENGINEER")),
    NavItem("/vendors", "Vendors", "bi-shop", _roles("ADMIN", "PROCUREMENT_OFFICER", "PROCUREMENT_LEAD")),
    NavItem(
        "/ai",
        "AI Assistant",
        "bi-robot",
        _roles("ADMIN", "COMPLIANCE_OFFICER", "IT_AUDITOR", "COMPLIANCE_LEAD", "PROCUREMENT_LEAD", "PRODUCT_OWNER"),
    ),
)


def route_for(path: str) -> Optional[NavItem]:
    """Return the NavItem governing path: exact match or a "/"-delimited prefix."""
    for item in NAV_ITEMS:
        if path == item.path or path.startswith(item.path + "/"):
            return item
    return None


def is_allowed(role: str, path: str) -> bool:
    """True if an authenticated user with role may view path."""
    item = route_for(path)
    return item is None or item.allows(role)


def visible_nav(role: str) -> list[NavItem]:
    """Navigation entries whose allow-list contains role, in display order."""
    return [item for item in NAV_ITEMS if item.allows(role)]


def resume_target(method: str, path: str, query: str = "") -> str:
    """The page to return to after login.

    Only GET navigations can be replayed. A form post resumes at the page that
    owns the route, or at the landing route when no page does.
    """
    if method.upper() not in ("GET", "HEAD"):
        item = route_for(path)
        return item.path if item else LANDING_ROUTE
    return f"{path}?{query}" if query else path


def guard(is_authenticated: bool, role: str, path: str, next_url: Optional[str] = None) -> Optional[str]:
    """Decide a navigation: None to render, or the URL to redirect to.

    1. unauthenticated             -> /auth?next=<next_url or path>, URL-encoded
    2. role not in route allow-list -> /dashboard
    3. otherwise                    -> render (None)
    """
    if not is_authenticated:
        return f"{AUTH_ROUTE}?next={quote(next_url or path, safe='/')}"
    if not is_allowed(role, path):
        return LANDING_ROUTE
    return None


def role_label(role: str) -> str:
    """Role badge text: the role without its ROLE_ prefix."""
    return role[5:] if role.startswith("ROLE_") else role


def is_active(item: NavItem, current_path: str) -> bool:
    """Highlight rule for the nav bar. "/" counts as the dashboard."""
    if item.path == LANDING_ROUTE:
        return current_path in ("/", LANDING_ROUTE) or current_path.startswith(LANDING_ROUTE + "/")
    return current_path.startswith(item.path)
