"""
API response models for the License Tracker console's JSON endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in inventory/models.py,
which own the domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class NavItemResponse(BaseModel):
    path: str
    label: str


class SessionResponse(BaseModel):
    """Response for GET /api/v1/session -- the role gate's current state."""

    model_config = ConfigDict(frozen=True)

    is_authenticated: bool
    role: str
    navigation: list[NavItemResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class ExpiringLicenseRow(BaseModel):
    license_key: str
    software_name: str
    vendor: str
    valid_to: Optional[str]
    devices_used: int
    expiry_level: str


class DashboardResponse(BaseModel):
    """Response for GET /api/v1/dashboard."""

    days: int
    total_devices: int
    total_licenses: int
    licenses_expiring_soon: int
    devices_at_risk: int
    expiring_licenses: list[ExpiringLicenseRow] = Field(default_factory=list)
