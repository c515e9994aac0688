"""
api/routes/v1/dashboard.py -- Aggregated license metrics as JSON.

Returns the same numbers the dashboard page renders:
  - total devices and licenses
  - licenses expiring within the window, each with its expiry badge level
  - devices at risk within the window

This is a read-only aggregate route -- no mutations here. The caller's
backend token is forwarded, so the backend applies its own authorization.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.models import DashboardResponse, ErrorDetail, ExpiringLicenseRow
from auth.dependencies import require_session
from auth.limiter import limiter
from auth.session import Session
from core.licensing import classify_expiry, normalize_alert_window
from inventory.client import BackendError
from inventory.services import DashboardService

# Auth policy:
# - GET /api/v1/dashboard: requires a console session.
router = APIRouter()


@limiter.limit("60/minute")
@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    request: Request,
    days: int = Query(default=30),
    session: Session = Depends(require_session),
) -> DashboardResponse:
    """Return headline license metrics for the look-ahead window (30/60/90/365 days)."""
    window = normalize_alert_window(days)
    try:
        metrics = DashboardService(request.app.state.backend, session.token).metrics(window)
    except BackendError as exc:
        raise HTTPException(
            status_code=502,
            detail=ErrorDetail(
                code="backend_error",
                message=exc.display("Failed to load dashboard data."),
            ).model_dump(),
        ) from exc

    return DashboardResponse(
        days=window,
        total_devices=metrics.total_devices,
        total_licenses=metrics.total_licenses,
        licenses_expiring_soon=metrics.licenses_expiring_soon,
        devices_at_risk=metrics.devices_at_risk,
        expiring_licenses=[
            ExpiringLicenseRow(
                license_key=a.license_key,
                software_name=a.software_name,
                vendor=a.vendor,
                valid_to=a.valid_to,
                devices_used=a.devices_used,
                expiry_level=classify_expiry(a.valid_to).level,
            )
            for a in metrics.expiring_licenses
        ],
    )
