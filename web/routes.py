"""
web/routes.py -- Jinja2 template routes for the License Tracker console.

These routes serve server-rendered HTML. Every page reads the signed session
cookie, runs the role gate (auth.access.guard) and talks to the REST backend
through inventory.services with the session's bearer token.

Conventions:
  - Protected handlers start with `if redirect := _require_page(request)`.
  - A GET renders; a form POST makes exactly one mutating backend call and
    303-redirects to the list on success (Post/Redirect/Get), with a one-shot
    flash message in the Starlette session.
  - On a failed POST the form is re-rendered with the submitted values and the
    backend's message (or a screen-specific fallback).
  - HTMX fragments live under templates/partials/.

Route registration order matters. FastAPI resolves same-level paths in order:
  - POST /devices/upload must be registered before POST /devices/{device_id}
    or FastAPI captures "upload" as a device id.

Routes:
  GET  /                                   -- redirect to /dashboard
  GET  /auth                               -- login + signup forms
  POST /auth/login                         -- backend login, start session
  POST /auth/signup                        -- backend signup
  POST /logout                             -- end session, redirect /auth
  GET  /dashboard                          -- metric cards + expiring licenses
  GET  /devices                            -- list / filter / paginate
  GET  /devices/new, POST /devices         -- create
  GET  /devices/upload, POST /devices/upload -- CSV bulk upload (HTMX result)
  GET  /devices/{id}/edit, POST /devices/{id} -- update
  POST /devices/{id}/status                -- quick status change
  POST /devices/{id}/delete                -- delete (DECOMMISSIONED only)
  GET  /devices/{id}/assign                -- assign-license form
  GET  /devices/{id}/assign/usage          -- HTMX: license utilization
  POST /devices/{id}/assign                -- create assignment
  GET  /devices/{id}/software              -- software version status
  POST /devices/{id}/software/renew        -- upgrade to latest version
  GET  /licenses                           -- list / search
  GET  /licenses/new, POST /licenses       -- create
  GET  /licenses/{key}/edit, POST /licenses/{key} -- update
  POST /licenses/{key}/delete              -- delete
  GET  /licenses/{key}/devices             -- assigned devices
  GET  /alerts                             -- expiring licenses with badges
  GET  /alerts/{key}/renew                 -- renewal form
  GET  /alerts/{key}/renew/preview         -- HTMX: new expiry date
  POST /alerts/{key}/renew                 -- renew license
  GET  /software ... POST /software/{id}/delete  -- software catalog CRUD
  GET  /vendors  ... POST /vendors/{id}/delete   -- vendor CRUD
  GET  /users, GET /users/new, POST /users -- list + create
  POST /users/{id}/role, POST /users/{id}/delete
  GET  /auditlogs                          -- filtered audit trail
  GET  /reports, GET /reports/export.csv   -- license report + CSV download
  GET  /ai, POST /ai/query                 -- AI assistant (HTMX chat)
"""

import logging
import math
import secrets
import string
import time
from datetime import timedelta
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from auth.access import LANDING_ROUTE, is_active, role_label, visible_nav
from auth.dependencies import require_page, try_get_session
from auth.limiter import limiter
from auth.session import Session, end_session, resolve_role, start_session
from core.config import get_settings, today
from core.formatter import to_csv
from core.licensing import (
    ALERT_WINDOWS,
    DEFAULT_RENEWAL_MONTHS,
    RENEWAL_MONTHS,
    classify_expiry,
    count_expired,
    is_outdated,
    is_renewable,
    normalize_alert_window,
    normalize_renewal_months,
    parse_date,
    renewal_date,
)
from inventory.client import BackendClient, BackendError
from inventory.ingest import parse_device_csv
from inventory.models import (
    AUDIT_ENTITY_TYPES,
    DEVICE_STATUSES,
    LICENSE_TYPES,
    SOFTWARE_STATUSES,
    Device,
    License,
    Software,
    Vendor,
)
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

logger = logging.getLogger("licensetracker.web")

_settings = get_settings()

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# ---------------------------------------------------------------------------
# Flash messages (one-shot, stored in the Starlette session)
# ---------------------------------------------------------------------------

_FLASH_KEY = "_flash"


def _flash(request: Request, message: str, category: str = "success") -> None:
    # Reassign so the session is marked modified.
    request.session[_FLASH_KEY] = [*request.session.get(_FLASH_KEY, []), [category, message]]


def pop_flashes(request: Request) -> list[list[str]]:
    """Return and clear pending flash messages. Exposed to templates."""
    return request.session.pop(_FLASH_KEY, [])


# Navigation helpers as Jinja2 globals so layout.html can render the nav bar
# without every handler passing the session into its context.
templates.env.globals["try_get_session"] = try_get_session
templates.env.globals["visible_nav"] = visible_nav
templates.env.globals["role_label"] = role_label
templates.env.globals["nav_active"] = is_active
templates.env.globals["pop_flashes"] = pop_flashes

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= and ?notice= query params on /auth.
# The raw query param is NEVER passed to templates -- only the message from
# these dicts is.
_ERROR_MESSAGES: dict[str, str] = {
    "session_expired": "Your session has expired. Please log in again.",
}
_NOTICE_MESSAGES: dict[str, str] = {
    "signup_success": "Signup successful! Please login.",
    "logged_out": "You have been logged out.",
}


def _safe_next(next_url: Optional[str]) -> Optional[str]:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative "//host" URLs, and never
    sends the user back to the auth screen itself.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        if next_url != "/auth" and not next_url.startswith("/auth?") and not next_url.startswith("/auth/"):
            return next_url
    return None


def _redirect_path(redirect_url: Optional[str]) -> Optional[str]:
    """Reduce a backend-supplied redirectUrl to a safe local path."""
    if not redirect_url:
        return None
    parsed = urlparse(redirect_url)
    return _safe_next(parsed.path or None)


def _require_page(request: Request) -> Optional[Response]:
    """Role gate for page handlers. HTMX requests get an HX-Redirect instead of a 302."""
    redirect = require_page(request)
    if redirect is not None and request.headers.get("HX-Request"):
        return Response(status_code=204, headers={"HX-Redirect": redirect.headers["location"]})
    return redirect


def _session(request: Request) -> Session:
    return try_get_session(request)


def _backend(request: Request) -> BackendClient:
    return request.app.state.backend


def _render(request: Request, name: str, context: Optional[dict] = None, status_code: int = 200) -> HTMLResponse:
    return templates.TemplateResponse(request, name, context or {}, status_code=status_code)


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


_MAX_UPLOAD_BYTES = 1 * 1024 * 1024  # 1 MB

_DEVICE_STATUS_CSS = {
    "ACTIVE": "bg-success",
    "MAINTENANCE": "bg-warning text-dark",
    "OBSOLETE": "bg-secondary",
    "DECOMMISSIONED": "bg-dark",
}

_SOFTWARE_STATUS_CSS = {
    "INSTALLED": "bg-success",
    "OUTDATED": "bg-warning text-dark",
    "MAINTENANCE": "bg-info text-dark",
    "UNAVAILABLE": "bg-danger",
}

templates.env.globals["device_status_css"] = _DEVICE_STATUS_CSS
templates.env.globals["software_status_css"] = _SOFTWARE_STATUS_CSS


# ---------------------------------------------------------------------------
# GET / -- landing redirect
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def root(request: Request) -> RedirectResponse:
    return RedirectResponse(LANDING_ROUTE, status_code=302)


# ---------------------------------------------------------------------------
# Auth routes -- login, signup, logout
# ---------------------------------------------------------------------------


@router.get("/auth", response_class=HTMLResponse)
def auth_page(request: Request) -> HTMLResponse:
    """Render the login/signup screen."""
    if _session(request).is_authenticated:
        return RedirectResponse(LANDING_ROUTE, status_code=302)

    mode = "signup" if request.query_params.get("mode") == "signup" else "login"
    return _render(
        request,
        "auth.html",
        {
            "mode": mode,
            "error_msg": _ERROR_MESSAGES.get(request.query_params.get("error", "")),
            "notice_msg": _NOTICE_MESSAGES.get(request.query_params.get("notice", "")),
            "next": _safe_next(request.query_params.get("next")) or "",
            "form_data": {},
        },
    )


@limiter.limit(_settings.login_rate_limit)  # brute-force mitigation -- must be ABOVE @router
@router.post("/auth/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    email: Optional[str] = Form(default=None),
    password: Optional[str] = Form(default=None),
    next_url: Optional[str] = Form(default=None, alias="next"),
) -> HTMLResponse:
    """Authenticate against the backend and start a console session."""
    form_data = {"email": _clean(email)}
    safe_next = _safe_next(next_url)

    def _fail(message: str) -> HTMLResponse:
        return _render(
            request,
            "auth.html",
            {"mode": "login", "error_msg": message, "notice_msg": None, "next": safe_next or "", "form_data": form_data},
        )

    if not form_data["email"] or not password:
        return _fail("Email and password are required.")

    try:
        result = AuthService(_backend(request)).login(form_data["email"], password)
    except BackendError as exc:
        return _fail(exc.display("Login failed"))
    if not result.token:
        logger.warning("Backend login for %s returned no token", form_data["email"])
        return _fail("Login failed")

    role = resolve_role(result.token, result.role)
    target = safe_next or _redirect_path(result.redirect_url) or LANDING_ROUTE
    resp = RedirectResponse(target, status_code=302)
    start_session(resp, result.token, role)
    resp.headers["Cache-Control"] = "no-store"
    logger.info("Login succeeded for %s (role=%s)", form_data["email"], role)
    return resp


@router.post("/auth/signup", response_class=HTMLResponse)
def signup_post(
    request: Request,
    username: Optional[str] = Form(default=None),
    email: Optional[str] = Form(default=None),
    password: Optional[str] = Form(default=None),
    mobile: Optional[str] = Form(default=None),
) -> HTMLResponse:
    """Register a new account with the backend, then return to the login form."""
    form_data = {"username": _clean(username), "email": _clean(email), "mobile": _clean(mobile)}

    def _fail(message: str) -> HTMLResponse:
        return _render(
            request,
            "auth.html",
            {"mode": "signup", "error_msg": message, "notice_msg": None, "next": "", "form_data": form_data},
        )

    if not form_data["username"] or not form_data["email"] or not password:
        return _fail("Username, email and password are required.")

    try:
        AuthService(_backend(request)).signup(
            form_data["username"], form_data["email"], password, form_data["mobile"] or None
        )
    except BackendError as exc:
        return _fail(exc.display("Signup failed"))
    return RedirectResponse("/auth?notice=signup_success", status_code=303)


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and redirect to the auth screen."""
    request.session.clear()
    resp = RedirectResponse("/auth?notice=logged_out", status_code=302)
    end_session(resp)
    return resp


# ---------------------------------------------------------------------------
# GET /dashboard
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    session = _session(request)
    metrics = None
    error = None
    try:
        metrics = DashboardService(_backend(request), session.token).metrics(30)
    except BackendError as exc:
        logger.warning("Dashboard load failed: %s", exc)
        error = "Failed to load dashboard data. Please check the backend connection."

    rows = []
    if metrics is not None:
        rows = [{"alert": a, "badge": classify_expiry(a.valid_to)} for a in metrics.expiring_licenses]
    return _render(request, "dashboard.html", {"metrics": metrics, "rows": rows, "error": error})


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


def _paginate(items: list, page: int, page_size: int) -> tuple[list, int, int]:
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = max(1, min(page, total_pages))
    start = (page - 1) * page_size
    return items[start : start + page_size], page, total_pages


@router.get("/devices", response_class=HTMLResponse)
def device_list(
    request: Request,
    ip_address: str = "",
    location: str = "",
    page: int = 1,
) -> HTMLResponse:
    """Device inventory with IP/location filter and pagination."""
    if redirect := _require_page(request):
        return redirect
    service = DeviceService(_backend(request), _session(request).token)
    ip_address, location = ip_address.strip(), location.strip()
    filtered = bool(ip_address or location)

    devices = []
    ip_options: list[str] = []
    location_options: list[str] = []
    error = None
    try:
        ip_options = service.list_ip_addresses()
        location_options = service.list_locations()
        devices = service.search_devices(ip_address, location) if filtered else service.list_devices()
    except BackendError as exc:
        error = exc.display("Failed to fetch devices")

    page_rows, page, total_pages = _paginate(devices, page, _settings.devices_per_page)
    empty_msg = "No devices found matching your criteria." if filtered else "No devices registered yet."
    return _render(
        request,
        "devices.html",
        {
            "devices": page_rows,
            "total_devices": len(devices),
            "page": page,
            "total_pages": total_pages,
            "ip_address": ip_address,
            "location": location,
            "ip_options": ip_options,
            "location_options": location_options,
            "filtered": filtered,
            "empty_msg": empty_msg,
            "statuses": DEVICE_STATUSES,
            "error": error,
        },
    )


def _device_form(request: Request, form_data: dict, error: Optional[str], is_new: bool) -> HTMLResponse:
    return _render(
        request,
        "device_form.html",
        {"form_data": form_data, "error": error, "is_new": is_new, "statuses": DEVICE_STATUSES},
    )


def _device_from_form(form_data: dict) -> tuple[Optional[Device], Optional[str]]:
    if not form_data["device_id"]:
        return None, "Device ID is required."
    if not form_data["name"]:
        return None, "Device name is required."
    if form_data["status"] not in DEVICE_STATUSES:
        return None, "Choose a valid status."
    return Device(**form_data), None


@router.get("/devices/new", response_class=HTMLResponse)
def device_create_form(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    return _device_form(request, {"status": "ACTIVE"}, None, is_new=True)


@router.post("/devices", response_class=HTMLResponse)
def device_create(
    request: Request,
    device_id: Optional[str] = Form(default=None),
    name: Optional[str] = Form(default=None),
    ip_address: Optional[str] = Form(default=None),
    device_type: Optional[str] = Form(default=None),
    location: Optional[str] = Form(default=None),
    model: Optional[str] = Form(default=None),
    status: Optional[str] = Form(default="ACTIVE"),
) -> HTMLResponse:
    """Handle device creation form POST. Redirects to the device list on success."""
    if redirect := _require_page(request):
        return redirect
    form_data = {
        "device_id": _clean(device_id),
        "name": _clean(name),
        "ip_address": _clean(ip_address),
        "device_type": _clean(device_type),
        "location": _clean(location),
        "model": _clean(model),
        "status": _clean(status).upper() or "ACTIVE",
    }
    device, error = _device_from_form(form_data)
    if error:
        return _device_form(request, form_data, error, is_new=True)
    try:
        DeviceService(_backend(request), _session(request).token).create_device(device)
    except BackendError as exc:
        return _device_form(request, form_data, exc.display("Failed to save device"), is_new=True)
    _flash(request, f"Device {device.device_id} added successfully.")
    return RedirectResponse("/devices", status_code=303)


@router.get("/devices/upload", response_class=HTMLResponse)
def device_upload_form(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    return _render(request, "device_upload.html", {})


@router.post("/devices/upload", response_class=HTMLResponse)
async def device_upload(request: Request, file: UploadFile) -> HTMLResponse:
    """HTMX: bulk-create devices from a CSV file, return a result fragment."""
    if redirect := _require_page(request):
        return redirect

    def _result(created: int, errors: list[str]) -> HTMLResponse:
        return _render(request, "partials/upload_result.html", {"created": created, "errors": errors})

    if not (file.filename or "").lower().endswith(".csv"):
        return _result(0, ["File must have a .csv extension."])
    raw = await file.read(_MAX_UPLOAD_BYTES + 1)
    if len(raw) > _MAX_UPLOAD_BYTES:
        return _result(0, ["File must be 1 MB or smaller."])

    parsed = parse_device_csv(raw.decode("utf-8", errors="replace"))
    errors = list(parsed.errors)
    created = 0
    service = DeviceService(_backend(request), _session(request).token)
    for device in parsed.devices:
        try:
            service.create_device(device)
            created += 1
        except BackendError as exc:
            errors.append(f"{device.device_id}: {exc.display('Failed to save device')}")
    logger.info("Device CSV upload: %d created, %d errors", created, len(errors))
    return _result(created, errors)


@router.get("/devices/{device_id}/edit", response_class=HTMLResponse)
def device_edit_form(request: Request, device_id: str) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    try:
        device = DeviceService(_backend(request), _session(request).token).get_device(device_id)
    except BackendError as exc:
        _flash(request, exc.display("Failed to fetch device"), "danger")
        return RedirectResponse("/devices", status_code=303)
    return _device_form(request, vars(device), None, is_new=False)


@router.post("/devices/{device_id}", response_class=HTMLResponse)
def device_update(
    request: Request,
    device_id: str,
    name: Optional[str] = Form(default=None),
    ip_address: Optional[str] = Form(default=None),
    device_type: Optional[str] = Form(default=None),
    location: Optional[str] = Form(default=None),
    model: Optional[str] = Form(default=None),
    status: Optional[str] = Form(default="ACTIVE"),
) -> HTMLResponse:
    """Handle device edit form POST. The device id comes from the path and is not editable."""
    if redirect := _require_page(request):
        return redirect
    form_data = {
        "device_id": device_id,
        "name": _clean(name),
        "ip_address": _clean(ip_address),
        "device_type": _clean(device_type),
        "location": _clean(location),
        "model": _clean(model),
        "status": _clean(status).upper() or "ACTIVE",
    }
    device, error = _device_from_form(form_data)
    if error:
        return _device_form(request, form_data, error, is_new=False)
    try:
        DeviceService(_backend(request), _session(request).token).update_device(device)
    except BackendError as exc:
        return _device_form(request, form_data, exc.display("Failed to save device"), is_new=False)
    _flash(request, f"Device {device_id} updated successfully.")
    return RedirectResponse("/devices", status_code=303)


@router.post("/devices/{device_id}/status")
def device_status_update(request: Request, device_id: str, status: str = Form(...)) -> RedirectResponse:
    if redirect := _require_page(request):
        return redirect
    status = status.strip().upper()
    if status not in DEVICE_STATUSES:
        _flash(request, "Choose a valid status.", "danger")
        return RedirectResponse("/devices", status_code=303)
    try:
        DeviceService(_backend(request), _session(request).token).update_status(device_id, status)
    except BackendError as exc:
        _flash(request, exc.display("Failed to update device status"), "danger")
        return RedirectResponse("/devices", status_code=303)
    _flash(request, f"Device {device_id} status changed to {status}.")
    return RedirectResponse("/devices", status_code=303)


@router.post("/devices/{device_id}/delete")
def device_delete(request: Request, device_id: str, status: str = Form(default="")) -> RedirectResponse:
    """Delete a device. Only DECOMMISSIONED devices may be deleted; others get a warning and no request."""
    if redirect := _require_page(request):
        return redirect
    if status.strip().upper() != "DECOMMISSIONED":
        _flash(
            request,
            "Device must be DECOMMISSIONED before deletion. Please update the status first.",
            "warning",
        )
        return RedirectResponse("/devices", status_code=303)
    try:
        DeviceService(_backend(request), _session(request).token).delete_device(device_id)
    except BackendError as exc:
        _flash(request, exc.display("Failed to delete device"), "danger")
        return RedirectResponse("/devices", status_code=303)
    _flash(request, f"Device {device_id} deleted successfully.")
    return RedirectResponse("/devices", status_code=303)


# ---------------------------------------------------------------------------
# Devices -- license assignment
# ---------------------------------------------------------------------------


def _usage_info(current: int, max_usage: Optional[int]) -> dict:
    """Utilization display for the assign form."""
    if not max_usage:
        return {"current": current, "max": None, "percent": None, "full": False}
    percent = round(current / max_usage * 100)
    return {"current": current, "max": max_usage, "percent": percent, "full": current >= max_usage}


def _find_license(licenses: list[License], license_key: str) -> Optional[License]:
    return next((lic for lic in licenses if lic.license_key == license_key), None)


@router.get("/devices/{device_id}/assign", response_class=HTMLResponse)
def assign_form(request: Request, device_id: str) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    token = _session(request).token
    licenses: list[License] = []
    assigned: list = []
    error = None
    try:
        licenses = LicenseService(_backend(request), token).list_licenses()
        assigned = AssignmentService(_backend(request), token).for_device(device_id)
    except BackendError as exc:
        error = exc.display("Failed to load licenses")
    return _render(
        request,
        "assign_form.html",
        {"device_id": device_id, "licenses": licenses, "assigned": assigned, "error": error, "selected": ""},
    )


@router.get("/devices/{device_id}/assign/usage", response_class=HTMLResponse)
def assign_usage(request: Request, device_id: str, license_key: str = "") -> HTMLResponse:
    """HTMX: utilization of the selected license."""
    if redirect := _require_page(request):
        return redirect
    usage = None
    error = None
    if license_key:
        token = _session(request).token
        try:
            lic = _find_license(LicenseService(_backend(request), token).list_licenses(), license_key)
            current = AssignmentService(_backend(request), token).usage(license_key)
            usage = _usage_info(current, lic.max_usage if lic else None)
        except BackendError as exc:
            error = exc.display("Failed to check license usage.")
    return _render(request, "partials/license_usage.html", {"usage": usage, "error": error})


@router.post("/devices/{device_id}/assign", response_class=HTMLResponse)
def assign_license(request: Request, device_id: str, license_key: str = Form(default="")) -> HTMLResponse:
    """Assign a license to a device after the duplicate and max-usage checks."""
    if redirect := _require_page(request):
        return redirect
    token = _session(request).token
    license_key = license_key.strip()
    licenses: list[License] = []
    assigned: list = []

    def _fail(message: str) -> HTMLResponse:
        return _render(
            request,
            "assign_form.html",
            {
                "device_id": device_id,
                "licenses": licenses,
                "assigned": assigned,
                "error": message,
                "selected": license_key,
            },
        )

    try:
        licenses = LicenseService(_backend(request), token).list_licenses()
        assignments = AssignmentService(_backend(request), token)
        assigned = assignments.for_device(device_id)
        if not license_key:
            return _fail("Please select a license.")
        if any(a.license_key == license_key for a in assigned):
            return _fail("Duplicate Assignment: This exact license is already assigned to this device.")
        lic = _find_license(licenses, license_key)
        if lic is not None and lic.max_usage:
            current = assignments.usage(license_key)
            if current >= lic.max_usage:
                return _fail(f"Assignment failed: Max Usage ({lic.max_usage}) Exceeded. Current: {current}.")
        assignments.assign(device_id, license_key)
    except BackendError as exc:
        return _fail(exc.display("Failed to assign license"))
    _flash(request, f"License {license_key} assigned to device {device_id}.")
    return RedirectResponse("/devices", status_code=303)


# ---------------------------------------------------------------------------
# Devices -- software version status
# ---------------------------------------------------------------------------


@router.get("/devices/{device_id}/software", response_class=HTMLResponse)
def device_software(request: Request, device_id: str) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    rows = []
    error = None
    try:
        statuses = DeviceService(_backend(request), _session(request).token).software_status(device_id)
        rows = [{"sw": s, "outdated": is_outdated(s.current_version, s.latest_version)} for s in statuses]
    except BackendError as exc:
        error = exc.display("Failed to fetch software status")
    return _render(
        request,
        "device_software.html",
        {"device_id": device_id, "rows": rows, "any_outdated": any(r["outdated"] for r in rows), "error": error},
    )


@router.post("/devices/{device_id}/software/renew")
def device_software_renew(request: Request, device_id: str) -> RedirectResponse:
    if redirect := _require_page(request):
        return redirect
    try:
        DeviceService(_backend(request), _session(request).token).renew_software(device_id)
    except BackendError as exc:
        _flash(request, exc.display("Failed to renew software version"), "danger")
    else:
        _flash(request, f"Software on device {device_id} updated to the latest version.")
    return RedirectResponse(f"/devices/{device_id}/software", status_code=303)


# ---------------------------------------------------------------------------
# Licenses
# ---------------------------------------------------------------------------


@router.get("/licenses", response_class=HTMLResponse)
def license_list(request: Request, vendor: str = "", software: str = "") -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    service = LicenseService(_backend(request), _session(request).token)
    vendor, software = vendor.strip(), software.strip()
    licenses: list[License] = []
    error = None
    try:
        licenses = service.search_licenses(vendor, software) if (vendor or software) else service.list_licenses()
    except BackendError as exc:
        error = exc.display("Failed to fetch licenses")
    rows = [{"license": lic, "badge": classify_expiry(lic.valid_to)} for lic in licenses]
    return _render(
        request,
        "licenses.html",
        {"rows": rows, "vendor": vendor, "software": software, "error": error},
    )


def _license_form(request: Request, form_data: dict, error: Optional[str], is_new: bool) -> HTMLResponse:
    return _render(
        request,
        "license_form.html",
        {"form_data": form_data, "error": error, "is_new": is_new, "license_types": LICENSE_TYPES},
    )


def _license_from_form(form_data: dict) -> tuple[Optional[License], Optional[str]]:
    """Validate license form fields. Dates must be ISO and valid_to must not precede valid_from."""
    if not form_data["license_key"]:
        return None, "License key is required."
    if not form_data["software_name"]:
        return None, "Software name is required."
    if not form_data["vendor"]:
        return None, "Vendor is required."
    if form_data["license_type"] not in LICENSE_TYPES:
        return None, "Choose a valid license type."
    valid_from = parse_date(form_data["valid_from"]) if form_data["valid_from"] else None
    valid_to = parse_date(form_data["valid_to"]) if form_data["valid_to"] else None
    if form_data["valid_from"] and valid_from is None:
        return None, "Valid from must be a date (YYYY-MM-DD)."
    if not form_data["valid_to"] or valid_to is None:
        return None, "Valid to must be a date (YYYY-MM-DD)."
    if valid_from and valid_to < valid_from:
        return None, "Valid to cannot be before valid from."
    max_usage = None
    if form_data["max_usage"]:
        try:
            max_usage = int(form_data["max_usage"])
        except ValueError:
            return None, "Max usage must be a whole number."
        if max_usage < 1:
            return None, "Max usage must be at least 1."
    return (
        License(
            license_key=form_data["license_key"],
            vendor=form_data["vendor"],
            software_name=form_data["software_name"],
            license_type=form_data["license_type"],
            valid_from=valid_from.isoformat() if valid_from else None,
            valid_to=valid_to.isoformat(),
            max_usage=max_usage,
            notes=form_data["notes"],
        ),
        None,
    )


def _license_form_data(
    license_key, vendor, software_name, license_type, valid_from, valid_to, max_usage, notes
) -> dict:
    return {
        "license_key": _clean(license_key),
        "vendor": _clean(vendor),
        "software_name": _clean(software_name),
        "license_type": _clean(license_type).upper() or "PER_DEVICE",
        "valid_from": _clean(valid_from),
        "valid_to": _clean(valid_to),
        "max_usage": _clean(max_usage),
        "notes": _clean(notes),
    }


@router.get("/licenses/new", response_class=HTMLResponse)
def license_create_form(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    return _license_form(request, {"license_type": "PER_DEVICE"}, None, is_new=True)


@router.post("/licenses", response_class=HTMLResponse)
def license_create(
    request: Request,
    license_key: Optional[str] = Form(default=None),
    vendor: Optional[str] = Form(default=None),
    software_name: Optional[str] = Form(default=None),
    license_type: Optional[str] = Form(default="PER_DEVICE"),
    valid_from: Optional[str] = Form(default=None),
    valid_to: Optional[str] = Form(default=None),
    max_usage: Optional[str] = Form(default=None),
    notes: Optional[str] = Form(default=None),
) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    form_data = _license_form_data(license_key, vendor, software_name, license_type, valid_from, valid_to, max_usage, notes)
    lic, error = _license_from_form(form_data)
    if error:
        return _license_form(request, form_data, error, is_new=True)
    try:
        LicenseService(_backend(request), _session(request).token).create_license(lic)
    except BackendError as exc:
        return _license_form(request, form_data, exc.display("Failed to save license"), is_new=True)
    _flash(request, f"License {lic.license_key} added successfully.")
    return RedirectResponse("/licenses", status_code=303)


@router.get("/licenses/{license_key}/edit", response_class=HTMLResponse)
def license_edit_form(request: Request, license_key: str) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    try:
        lic = LicenseService(_backend(request), _session(request).token).get_license(license_key)
    except BackendError as exc:
        _flash(request, exc.display("Failed to fetch license"), "danger")
        return RedirectResponse("/licenses", status_code=303)
    form_data = vars(lic) | {
        "valid_from": lic.valid_from or "",
        "valid_to": lic.valid_to or "",
        "max_usage": "" if lic.max_usage is None else str(lic.max_usage),
    }
    return _license_form(request, form_data, None, is_new=False)


@router.post("/licenses/{license_key}", response_class=HTMLResponse)
def license_update(
    request: Request,
    license_key: str,
    vendor: Optional[str] = Form(default=None),
    software_name: Optional[str] = Form(default=None),
    license_type: Optional[str] = Form(default="PER_DEVICE"),
    valid_from: Optional[str] = Form(default=None),
    valid_to: Optional[str] = Form(default=None),
    max_usage: Optional[str] = Form(default=None),
    notes: Optional[str] = Form(default=None),
) -> HTMLResponse:
    """Handle license edit form POST. The license key comes from the path and is immutable."""
    if redirect := _require_page(request):
        return redirect
    form_data = _license_form_data(license_key, vendor, software_name, license_type, valid_from, valid_to, max_usage, notes)
    lic, error = _license_from_form(form_data)
    if error:
        return _license_form(request, form_data, error, is_new=False)
    try:
        LicenseService(_backend(request), _session(request).token).update_license(lic)
    except BackendError as exc:
        return _license_form(request, form_data, exc.display("Failed to save license"), is_new=False)
    _flash(request, f"License {license_key} updated successfully.")
    return RedirectResponse("/licenses", status_code=303)


@router.post("/licenses/{license_key}/delete")
def license_delete(request: Request, license_key: str) -> RedirectResponse:
    if redirect := _require_page(request):
        return redirect
    try:
        LicenseService(_backend(request), _session(request).token).delete_license(license_key)
    except BackendError as exc:
        _flash(request, exc.display("Failed to delete license"), "danger")
        return RedirectResponse("/licenses", status_code=303)
    _flash(request, f"License {license_key} deleted successfully.")
    return RedirectResponse("/licenses", status_code=303)


@router.get("/licenses/{license_key}/devices", response_class=HTMLResponse)
def license_devices(request: Request, license_key: str) -> HTMLResponse:
    """Devices currently holding a license."""
    if redirect := _require_page(request):
        return redirect
    assignments = []
    error = None
    try:
        assignments = AssignmentService(_backend(request), _session(request).token).for_license(license_key)
    except BackendError as exc:
        error = exc.display("Failed to fetch assigned devices")
    return _render(
        request,
        "license_devices.html",
        {"license_key": license_key, "assignments": assignments, "error": error},
    )


# ---------------------------------------------------------------------------
# Alerts and renewal
# ---------------------------------------------------------------------------


@router.get("/alerts", response_class=HTMLResponse)
def alerts(request: Request, days: Optional[int] = None) -> HTMLResponse:
    """Licenses expiring within the look-ahead window, each with its expiry badge."""
    if redirect := _require_page(request):
        return redirect
    window = normalize_alert_window(days)
    rows = []
    error = None
    try:
        for alert in AlertService(_backend(request), _session(request).token).expiring(window):
            badge = classify_expiry(alert.valid_to)
            rows.append({"alert": alert, "badge": badge, "renewable": is_renewable(badge)})
    except BackendError as exc:
        error = exc.display("Failed to fetch alerts")
    return _render(
        request,
        "alerts.html",
        {"rows": rows, "days": window, "windows": ALERT_WINDOWS, "error": error},
    )


def _renew_form(
    request: Request, license_key: str, valid_to: str, months: int, error: Optional[str] = None
) -> HTMLResponse:
    return _render(
        request,
        "renew_form.html",
        {
            "license_key": license_key,
            "valid_to": valid_to,
            "months": months,
            "month_options": RENEWAL_MONTHS,
            "new_valid_to": renewal_date(valid_to, months),
            "error": error,
        },
    )


@router.get("/alerts/{license_key}/renew", response_class=HTMLResponse)
def renew_form(request: Request, license_key: str, valid_to: str = "", months: int = DEFAULT_RENEWAL_MONTHS) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    if parse_date(valid_to) is None:
        try:
            valid_to = LicenseService(_backend(request), _session(request).token).get_license(license_key).valid_to or ""
        except BackendError as exc:
            _flash(request, exc.display("Failed to fetch license"), "danger")
            return RedirectResponse("/alerts", status_code=303)
    return _renew_form(request, license_key, valid_to, normalize_renewal_months(months))


@router.get("/alerts/{license_key}/renew/preview", response_class=HTMLResponse)
def renew_preview(
    request: Request, license_key: str, valid_to: str = "", months: int = DEFAULT_RENEWAL_MONTHS
) -> HTMLResponse:
    """HTMX: the expiry date a renewal of the chosen length would produce."""
    if redirect := _require_page(request):
        return redirect
    months = normalize_renewal_months(months)
    return _render(
        request,
        "partials/renew_preview.html",
        {"new_valid_to": renewal_date(valid_to, months), "months": months},
    )


@router.post("/alerts/{license_key}/renew", response_class=HTMLResponse)
def renew_license(
    request: Request,
    license_key: str,
    valid_to: str = Form(default=""),
    months: int = Form(default=DEFAULT_RENEWAL_MONTHS),
) -> HTMLResponse:
    """Extend a license by the chosen number of months with a single PUT."""
    if redirect := _require_page(request):
        return redirect
    months = normalize_renewal_months(months)
    new_valid_to = renewal_date(valid_to, months)
    try:
        LicenseService(_backend(request), _session(request).token).renew_license(license_key, new_valid_to.isoformat())
    except BackendError as exc:
        return _renew_form(
            request, license_key, valid_to, months, error=f"Renewal failed: {exc.display('Unknown error')}."
        )
    _flash(request, f"License {license_key} renewed until {new_valid_to.isoformat()}.")
    return RedirectResponse("/alerts", status_code=303)


# ---------------------------------------------------------------------------
# Software catalog
# ---------------------------------------------------------------------------


def _software_form(request: Request, form_data: dict, error: Optional[str], software_id: Optional[int]) -> HTMLResponse:
    return _render(
        request,
        "software_form.html",
        {"form_data": form_data, "error": error, "software_id": software_id, "statuses": SOFTWARE_STATUSES},
    )


def _software_from_form(form_data: dict, software_id: Optional[int]) -> tuple[Optional[Software], Optional[str]]:
    if not form_data["name"]:
        return None, "Software name is required."
    if form_data["status"] not in SOFTWARE_STATUSES:
        return None, "Choose a valid status."
    last_checked = parse_date(form_data["last_checked"]) if form_data["last_checked"] else today()
    if last_checked is None:
        return None, "Last checked must be a date (YYYY-MM-DD)."
    return (
        Software(
            software_id=software_id,
            name=form_data["name"],
            current_version=form_data["current_version"],
            latest_version=form_data["latest_version"],
            status=form_data["status"],
            last_checked=last_checked.isoformat(),
        ),
        None,
    )


def _software_form_data(name, current_version, latest_version, status, last_checked) -> dict:
    return {
        "name": _clean(name),
        "current_version": _clean(current_version),
        "latest_version": _clean(latest_version),
        "status": _clean(status).upper() or "INSTALLED",
        "last_checked": _clean(last_checked),
    }


@router.get("/software", response_class=HTMLResponse)
def software_list(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    rows = []
    error = None
    try:
        for sw in SoftwareService(_backend(request), _session(request).token).list_software():
            rows.append({"sw": sw, "outdated": is_outdated(sw.current_version, sw.latest_version)})
    except BackendError as exc:
        error = exc.display("Failed to fetch software")
    return _render(request, "software.html", {"rows": rows, "error": error})


@router.get("/software/new", response_class=HTMLResponse)
def software_create_form(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    return _software_form(request, {"status": "INSTALLED", "last_checked": today().isoformat()}, None, None)


@router.post("/software", response_class=HTMLResponse)
def software_create(
    request: Request,
    name: Optional[str] = Form(default=None),
    current_version: Optional[str] = Form(default=None),
    latest_version: Optional[str] = Form(default=None),
    status: Optional[str] = Form(default="INSTALLED"),
    last_checked: Optional[str] = Form(default=None),
) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    form_data = _software_form_data(name, current_version, latest_version, status, last_checked)
    sw, error = _software_from_form(form_data, None)
    if error:
        return _software_form(request, form_data, error, None)
    try:
        SoftwareService(_backend(request), _session(request).token).create_software(sw)
    except BackendError as exc:
        return _software_form(request, form_data, exc.display("Failed to save software"), None)
    _flash(request, f"Software {sw.name} added successfully.")
    return RedirectResponse("/software", status_code=303)


@router.get("/software/{software_id}/edit", response_class=HTMLResponse)
def software_edit_form(request: Request, software_id: int) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    try:
        sw = SoftwareService(_backend(request), _session(request).token).get_software(software_id)
    except BackendError as exc:
        _flash(request, exc.display("Failed to fetch software"), "danger")
        return RedirectResponse("/software", status_code=303)
    return _software_form(request, vars(sw) | {"last_checked": sw.last_checked or ""}, None, software_id)


@router.post("/software/{software_id}", response_class=HTMLResponse)
def software_update(
    request: Request,
    software_id: int,
    name: Optional[str] = Form(default=None),
    current_version: Optional[str] = Form(default=None),
    latest_version: Optional[str] = Form(default=None),
    status: Optional[str] = Form(default="INSTALLED"),
    last_checked: Optional[str] = Form(default=None),
) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    form_data = _software_form_data(name, current_version, latest_version, status, last_checked)
    sw, error = _software_from_form(form_data, software_id)
    if error:
        return _software_form(request, form_data, error, software_id)
    try:
        SoftwareService(_backend(request), _session(request).token).update_software(sw)
    except BackendError as exc:
        return _software_form(request, form_data, exc.display("Failed to save software"), software_id)
    _flash(request, f"Software {sw.name} updated successfully.")
    return RedirectResponse("/software", status_code=303)


@router.post("/software/{software_id}/delete")
def software_delete(request: Request, software_id: int) -> RedirectResponse:
    if redirect := _require_page(request):
        return redirect
    try:
        SoftwareService(_backend(request), _session(request).token).delete_software(software_id)
    except BackendError as exc:
        _flash(request, exc.display("Failed to delete software"), "danger")
    else:
        _flash(request, "Software deleted successfully.")
    return RedirectResponse("/software", status_code=303)


# ---------------------------------------------------------------------------
# Vendors
# ---------------------------------------------------------------------------


def _vendor_form(request: Request, form_data: dict, error: Optional[str], vendor_id: Optional[int]) -> HTMLResponse:
    return _render(request, "vendor_form.html", {"form_data": form_data, "error": error, "vendor_id": vendor_id})


def _vendor_from_form(form_data: dict, vendor_id: Optional[int]) -> tuple[Optional[Vendor], Optional[str]]:
    if not form_data["name"]:
        return None, "Vendor name is required."
    email = form_data["support_email"]
    if email and ("@" not in email or email.startswith("@") or email.endswith("@")):
        return None, "Support email must be a valid email address."
    return Vendor(vendor_id=vendor_id, name=form_data["name"], support_email=email), None


@router.get("/vendors", response_class=HTMLResponse)
def vendor_list(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    vendors = []
    error = None
    try:
        vendors = VendorService(_backend(request), _session(request).token).list_vendors()
    except BackendError as exc:
        error = exc.display("Failed to fetch vendors")
    return _render(request, "vendors.html", {"vendors": vendors, "error": error})


@router.get("/vendors/new", response_class=HTMLResponse)
def vendor_create_form(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    return _vendor_form(request, {}, None, None)


@router.post("/vendors", response_class=HTMLResponse)
def vendor_create(
    request: Request,
    name: Optional[str] = Form(default=None),
    support_email: Optional[str] = Form(default=None),
) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    form_data = {"name": _clean(name), "support_email": _clean(support_email)}
    vendor, error = _vendor_from_form(form_data, None)
    if error:
        return _vendor_form(request, form_data, error, None)
    try:
        VendorService(_backend(request), _session(request).token).create_vendor(vendor)
    except BackendError as exc:
        return _vendor_form(request, form_data, exc.display("Failed to save vendor"), None)
    _flash(request, f"Vendor {vendor.name} added successfully.")
    return RedirectResponse("/vendors", status_code=303)


@router.get("/vendors/{vendor_id}/edit", response_class=HTMLResponse)
def vendor_edit_form(request: Request, vendor_id: int) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    try:
        vendor = VendorService(_backend(request), _session(request).token).get_vendor(vendor_id)
    except BackendError as exc:
        _flash(request, exc.display("Failed to fetch vendor"), "danger")
        return RedirectResponse("/vendors", status_code=303)
    return _vendor_form(request, vars(vendor), None, vendor_id)


@router.post("/vendors/{vendor_id}", response_class=HTMLResponse)
def vendor_update(
    request: Request,
    vendor_id: int,
    name: Optional[str] = Form(default=None),
    support_email: Optional[str] = Form(default=None),
) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    form_data = {"name": _clean(name), "support_email": _clean(support_email)}
    vendor, error = _vendor_from_form(form_data, vendor_id)
    if error:
        return _vendor_form(request, form_data, error, vendor_id)
    try:
        VendorService(_backend(request), _session(request).token).update_vendor(vendor)
    except BackendError as exc:
        return _vendor_form(request, form_data, exc.display("Failed to save vendor"), vendor_id)
    _flash(request, f"Vendor {vendor.name} updated successfully.")
    return RedirectResponse("/vendors", status_code=303)


@router.post("/vendors/{vendor_id}/delete")
def vendor_delete(request: Request, vendor_id: int) -> RedirectResponse:
    if redirect := _require_page(request):
        return redirect
    try:
        VendorService(_backend(request), _session(request).token).delete_vendor(vendor_id)
    except BackendError as exc:
        _flash(request, exc.display("Failed to delete vendor"), "danger")
    else:
        _flash(request, "Vendor deleted successfully.")
    return RedirectResponse("/vendors", status_code=303)


# ---------------------------------------------------------------------------
# Users and roles
# ---------------------------------------------------------------------------

_DEFAULT_ROLE = "ROLE_USER"
_PROTECTED_ROLE = "ROLE_ADMIN"


def _default_role(roles: list[str]) -> str:
    if _DEFAULT_ROLE in roles:
        return _DEFAULT_ROLE
    return roles[0] if roles else ""


@router.get("/users", response_class=HTMLResponse)
def user_list(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    token = _session(request).token
    users = []
    roles: list[str] = []
    error = None
    try:
        users = UserService(_backend(request), token).list_users()
        roles = RoleService(_backend(request), token).list_roles()
    except BackendError as exc:
        error = exc.display("Failed to load users")
    return _render(
        request,
        "users.html",
        {"users": users, "roles": roles, "protected_role": _PROTECTED_ROLE, "error": error},
    )


def _user_form(request: Request, form_data: dict, error: Optional[str]) -> HTMLResponse:
    roles: list[str] = []
    try:
        roles = RoleService(_backend(request), _session(request).token).list_roles()
    except BackendError as exc:
        error = error or exc.display("Failed to load user roles.")
    if not form_data.get("role"):
        form_data["role"] = _default_role(roles)
    return _render(request, "user_form.html", {"form_data": form_data, "roles": roles, "error": error})


@router.get("/users/new", response_class=HTMLResponse)
def user_create_form(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    return _user_form(request, {}, None)


@router.post("/users", response_class=HTMLResponse)
def user_create(
    request: Request,
    name: Optional[str] = Form(default=None),
    email: Optional[str] = Form(default=None),
    password: Optional[str] = Form(default=None),
    role: Optional[str] = Form(default=None),
) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    form_data = {"name": _clean(name), "email": _clean(email), "role": _clean(role)}
    if not form_data["name"] or not form_data["email"] or not password or not form_data["role"]:
        return _user_form(request, form_data, "Name, email, password and role are required.")
    try:
        UserService(_backend(request), _session(request).token).create_user(
            form_data["name"], form_data["email"], password, form_data["role"]
        )
    except BackendError as exc:
        return _user_form(request, form_data, exc.display("Failed to create user"))
    _flash(request, f"User {form_data['email']} created successfully.")
    return RedirectResponse("/users", status_code=303)


@router.post("/users/{user_id}/role")
def user_role_update(
    request: Request,
    user_id: int,
    role: str = Form(default=""),
    current_role: str = Form(default=""),
) -> RedirectResponse:
    if redirect := _require_page(request):
        return redirect
    if current_role == _PROTECTED_ROLE:
        _flash(request, "Admin users cannot be edited.", "warning")
        return RedirectResponse("/users", status_code=303)
    if not role.strip():
        _flash(request, "Choose a role.", "danger")
        return RedirectResponse("/users", status_code=303)
    try:
        UserService(_backend(request), _session(request).token).update_role(user_id, role.strip())
    except BackendError as exc:
        _flash(request, exc.display("Failed to update role"), "danger")
    else:
        _flash(request, f"Role updated to {role_label(role.strip())}.")
    return RedirectResponse("/users", status_code=303)


@router.post("/users/{user_id}/delete")
def user_delete(request: Request, user_id: int, current_role: str = Form(default="")) -> RedirectResponse:
    if redirect := _require_page(request):
        return redirect
    if current_role == _PROTECTED_ROLE:
        _flash(request, "Admin users cannot be deleted.", "warning")
        return RedirectResponse("/users", status_code=303)
    try:
        UserService(_backend(request), _session(request).token).delete_user(user_id)
    except BackendError as exc:
        _flash(request, exc.display("Failed to delete user"), "danger")
    else:
        _flash(request, "User deleted successfully.")
    return RedirectResponse("/users", status_code=303)


# ---------------------------------------------------------------------------
# Audit logs
# ---------------------------------------------------------------------------

_AUDIT_DEFAULT_DAYS = 7


@router.get("/auditlogs", response_class=HTMLResponse)
def audit_logs(request: Request) -> HTMLResponse:
    """Audit trail. First visit shows the last 7 days; a submitted filter sends only non-empty fields."""
    if redirect := _require_page(request):
        return redirect
    params = request.query_params
    if "start_date" in params or "end_date" in params:
        start_date = params.get("start_date", "").strip()
        end_date = params.get("end_date", "").strip()
    else:
        end = today()
        start_date = (end - timedelta(days=_AUDIT_DEFAULT_DAYS)).isoformat()
        end_date = end.isoformat()
    user_id = params.get("user_id", "").strip()
    entity_type = params.get("entity_type", "").strip()
    if entity_type not in AUDIT_ENTITY_TYPES:
        entity_type = ""

    logs = []
    error = None
    if (start_date and parse_date(start_date) is None) or (end_date and parse_date(end_date) is None):
        error = "Dates must be in YYYY-MM-DD format."
    else:
        try:
            logs = AuditLogService(_backend(request), _session(request).token).list_logs(
                start_date, end_date, user_id, entity_type
            )
        except BackendError as exc:
            error = exc.display("Failed to fetch audit logs")
    return _render(
        request,
        "auditlogs.html",
        {
            "logs": logs,
            "filters": {
                "start_date": start_date,
                "end_date": end_date,
                "user_id": user_id,
                "entity_type": entity_type,
            },
            "entity_types": AUDIT_ENTITY_TYPES,
            "error": error,
        },
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _report_filters(request: Request) -> dict[str, str]:
    return {key: request.query_params.get(key, "").strip() for key in ("vendor", "software", "location")}


def _options(values, selected: str) -> list[str]:
    """Sorted distinct non-empty values, always including the active selection."""
    found = {v for v in values if v}
    if selected:
        found.add(selected)
    return sorted(found)


@router.get("/reports", response_class=HTMLResponse)
def reports(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    filters = _report_filters(request)
    rows = []
    error = None
    try:
        rows = ReportService(_backend(request), _session(request).token).license_report(**filters)
    except BackendError as exc:
        error = exc.display("Failed to fetch report data")
    return _render(
        request,
        "reports.html",
        {
            "rows": [{"row": r, "badge": classify_expiry(r.expiry_date)} for r in rows],
            "total": len(rows),
            "expired": count_expired(r.expiry_date for r in rows),
            "filters": filters,
            "vendor_options": _options((r.vendor_name for r in rows), filters["vendor"]),
            "software_options": _options((r.software_name for r in rows), filters["software"]),
            "location_options": _options((r.location for r in rows), filters["location"]),
            "error": error,
        },
    )


@router.get("/reports/export.csv")
def reports_export(request: Request) -> Response:
    """Download the filtered license report as CSV."""
    if redirect := _require_page(request):
        return redirect
    filters = _report_filters(request)
    try:
        rows = ReportService(_backend(request), _session(request).token).license_report(**filters)
    except BackendError as exc:
        _flash(request, exc.display("Failed to fetch report data"), "danger")
        return RedirectResponse("/reports", status_code=303)
    return Response(
        content=to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="license_report.csv"'},
    )


# ---------------------------------------------------------------------------
# AI assistant
# ---------------------------------------------------------------------------

_AI_SESSION_KEY = "ai_session_id"
_AI_SCOPES = ("", "LICENSE", "DEVICE")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def _new_ai_session_id() -> str:
    """bot-session-<epoch millis><6 random chars>."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"bot-session-{int(time.time() * 1000)}{suffix}"


def _ai_session_id(request: Request) -> str:
    """Return this browser's chat session id, creating it on first use."""
    session_id = request.session.get(_AI_SESSION_KEY)
    if not session_id:
        session_id = _new_ai_session_id()
        request.session[_AI_SESSION_KEY] = session_id
    return session_id


@router.get("/ai", response_class=HTMLResponse)
def ai_page(request: Request) -> HTMLResponse:
    if redirect := _require_page(request):
        return redirect
    return _render(request, "ai.html", {"session_id": _ai_session_id(request), "scopes": _AI_SCOPES})


@router.post("/ai/query", response_class=HTMLResponse)
def ai_query(
    request: Request,
    query: str = Form(default=""),
    scope: str = Form(default=""),
    location: str = Form(default=""),
) -> HTMLResponse:
    """HTMX: send one question to the AI endpoint and return the exchange as a chat fragment."""
    if redirect := _require_page(request):
        return redirect
    session_id = request.session.get(_AI_SESSION_KEY)
    query = query.strip()
    scope = scope.strip().upper()
    if scope not in _AI_SCOPES:
        scope = ""

    if not session_id or not query:
        return _render(
            request,
            "partials/ai_message.html",
            {"query": None, "answer": None, "error": "Session not ready or query is empty."},
        )
    answer = None
    error = None
    try:
        answer = AIService(_backend(request), _session(request).token).query(session_id, query, scope, location.strip())
    except BackendError as exc:
        error = exc.display("The AI assistant could not answer right now.")
    return _render(request, "partials/ai_message.html", {"query": query, "answer": answer, "error": error})
