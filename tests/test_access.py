"""
tests/test_access.py -- Unit tests for auth/access.py (role allow-lists and the route guard).

Coverage:
  - guard(): unauthenticated -> /auth?next=, disallowed role -> /dashboard, allowed -> None
  - sub-paths inherit their top-level allow-list
  - unlisted paths only need a session
  - visible_nav() shows exactly the pages guard() would let through
  - resume_target(): GET keeps path and query, form posts resume at their page
  - role_label() and the active-link rule
"""

from __future__ import annotations

import pytest

from auth.access import NAV_ITEMS, guard, is_active, is_allowed, resume_target, role_label, route_for, visible_nav


class TestGuard:
    def test_unauthenticated_redirects_to_auth_with_next(self) -> None:
        assert guard(False, "GUEST", "/licenses") == "/auth?next=/licenses"

    def test_unauthenticated_on_landing_route(self) -> None:
        assert guard(False, "GUEST", "/dashboard") == "/auth?next=/dashboard"

    def test_next_is_url_encoded(self) -> None:
        assert guard(False, "GUEST", "/devices", "/devices?location=HQ A&page=2") == (
            "/auth?next=/devices%3Flocation%3DHQ%20A%26page%3D2"
        )

    def test_disallowed_role_goes_to_dashboard(self) -> None:
        assert guard(True, "ROLE_NETWORK_ENGINEER", "/users") == "/dashboard"

    def test_allowed_role_renders(self) -> None:
        assert guard(True, "ROLE_SECURITY_HEAD", "/users") is None

    def test_dashboard_open_to_every_role(self) -> None:
        assert guard(True, "ROLE_PRODUCT_OWNER", "/dashboard") is None
        assert guard(True, "GUEST", "/dashboard") is None

    def test_sub_path_inherits_allow_list(self) -> None:
        assert guard(True, "ROLE_NETWORK_ENGINEER", "/devices/D-1/edit") is None
        assert guard(True, "ROLE_IT_AUDITOR", "/devices/D-1/edit") == "/dashboard"

    def test_prefix_must_end_at_a_segment(self) -> None:
        # /alertsx is not /alerts
        assert route_for("/alertsx") is None

    def test_unlisted_path_only_needs_a_session(self) -> None:
        assert is_allowed("ROLE_WHATEVER", "/logout")


@pytest.mark.parametrize(
    ("role", "path", "allowed"),
    [
        ("ROLE_ADMIN", "/ai", True),
        ("ROLE_PRODUCT_OWNER", "/ai", True),
        ("ROLE_NETWORK_ADMIN", "/ai", False),
        ("ROLE_PROCUREMENT_OFFICER", "/licenses", True),
        ("ROLE_COMPLIANCE_OFFICER", "/licenses", False),
        ("ROLE_COMPLIANCE_OFFICER", "/alerts", True),
        ("ROLE_PROCUREMENT_LEAD", "/vendors", True),
        ("ROLE_OPERATIONS_MANAGER", "/vendors", False),
        ("ROLE_IT_AUDITOR", "/auditlogs", True),
        ("ROLE_OPERATIONS_MANAGER", "/software", True),
        ("ROLE_COMPLIANCE_LEAD", "/reports", True),
        ("ROLE_NETWORK_ENGINEER", "/reports", False),
    ],
)
def test_allow_lists(role: str, path: str, allowed: bool) -> None:
    assert is_allowed(role, path) is allowed


class TestNavigation:
    def test_admin_sees_everything(self) -> None:
        assert [i.path for i in visible_nav("ROLE_ADMIN")] == [i.path for i in NAV_ITEMS]

    def test_nav_matches_guard(self) -> None:
        role = "ROLE_IT_AUDITOR"
        shown = {i.path for i in visible_nav(role)}
        gated = {i.path for i in NAV_ITEMS if guard(True, role, i.path) is None}
        assert shown == gated == {"/dashboard", "/reports", "/auditlogs", "/ai"}

    def test_unknown_role_sees_only_dashboard(self) -> None:
        assert [i.path for i in visible_nav("GUEST")] == ["/dashboard"]

    def test_role_label_strips_prefix(self) -> None:
        assert role_label("ROLE_NETWORK_ADMIN") == "NETWORK_ADMIN"
        assert role_label("GUEST") == "GUEST"

    def test_root_path_highlights_dashboard(self) -> None:
        dashboard = route_for("/dashboard")
        assert is_active(dashboard, "/")
        assert not is_active(route_for("/devices"), "/")

    def test_sub_path_highlights_parent(self) -> None:
        assert is_active(route_for("/licenses"), "/licenses/K-1/edit")


class TestResumeTarget:
    def test_get_keeps_path(self) -> None:
        assert resume_target("GET", "/licenses") == "/licenses"

    def test_get_keeps_query(self) -> None:
        assert resume_target("GET", "/devices", "location=HQ&page=2") == "/devices?location=HQ&page=2"

    def test_post_resumes_at_owning_page(self) -> None:
        assert resume_target("POST", "/licenses/K-1/delete") == "/licenses"
        assert resume_target("POST", "/alerts/K-1/renew") == "/alerts"

    def test_post_without_page_resumes_at_landing_route(self) -> None:
        assert resume_target("POST", "/logout") == "/dashboard"
