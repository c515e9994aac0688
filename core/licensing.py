"""
core/licensing.py -- License expiry classification and renewal date arithmetic.

Pure functions over dates. Every function takes the reference day explicitly
(default: core.config.today()) so results are deterministic in tests and the
web layer never does date math inline.

Expiry levels, by whole days remaining until valid_to:
  < 0      expired   "EXPIRED n days ago"
  0 .. 30  warning   "Expires in n days"
  31 .. 90 caution   "Expires in n days"
  > 90     active    "ACTIVE"

Layer rule: core/ is the kernel. No imports from api/, web/, auth/, or inventory/.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from core.config import today as _today

WARNING_DAYS = 30
CAUTION_DAYS = 90

RENEWAL_MONTHS = (3, 6, 12, 24)
DEFAULT_RENEWAL_MONTHS = 12

ALERT_WINDOWS = (30, 60, 90, 365)
DEFAULT_ALERT_WINDOW = 30

DateLike = Union[date, str, None]


@dataclass(frozen=True)
class ExpiryBadge:
    """Display state for a license expiry date."""

    level: str  # "expired" | "warning" | "caution" | "active" | "unknown"
    text: str
    css: str
    days: Optional[int] = None


_UNKNOWN = ExpiryBadge(level="unknown", text="—", css="text-muted")


def parse_date(value: DateLike) -> Optional[date]:
    """Coerce an ISO date or datetime string (or a date) to a date. None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def days_until(expiry: DateLike, today: Optional[date] = None) -> Optional[int]:
    """Whole days from today until expiry. Negative once expired, None if no date."""
    expiry_date = parse_date(expiry)
    if expiry_date is None:
        return None
    return (expiry_date - (today or _today())).days


def classify_expiry(expiry: DateLike, today: Optional[date] = None) -> ExpiryBadge:
    """Return the expiry badge for a license's valid_to date."""
    days = days_until(expiry, today)
    if days is None:
        return _UNKNOWN
    if days < 0:
        return ExpiryBadge("expired", f"EXPIRED {-days} days ago", "bg-danger", days)
    if days <= WARNING_DAYS:
        return ExpiryBadge("warning", f"Expires in {days} days", "bg-warning text-dark", days)
    if days <= CAUTION_DAYS:
        return ExpiryBadge("caution", f"Expires in {days} days", "bg-info text-dark", days)
    return ExpiryBadge("active", "ACTIVE", "bg-success", days)


def is_renewable(badge: ExpiryBadge) -> bool:
    """Renew is offered only for expired licenses and those inside the warning window."""
    return badge.level in ("expired", "warning")


def add_months(start: date, months: int) -> date:
    """Advance start by calendar months, clamping the day to the target month's end.

    >>> add_months(date(2024, 1, 31), 1)
    datetime.date(2024, 2, 29)
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def renewal_date(valid_to: DateLike, months: int, today: Optional[date] = None) -> date:
    """Compute the new valid_to for a renewal of the given length.

    A license that expired or expires today renews from today. One that is
    still valid renews from the day after its current expiry.

    Raises ValueError if months is not positive.
    """
    if months < 1:
        raise ValueError("Renewal duration must be at least one month.")
    ref = today or _today()
    current = parse_date(valid_to)
    if current is None or current <= ref:
        base = ref
    else:
        base = current + timedelta(days=1)
    return add_months(base, months)


def normalize_alert_window(days: Optional[int]) -> int:
    """Clamp a requested look-ahead to one of the offered windows."""
    return days if days in ALERT_WINDOWS else DEFAULT_ALERT_WINDOW


def normalize_renewal_months(months: Optional[int]) -> int:
    return months if months in RENEWAL_MONTHS else DEFAULT_RENEWAL_MONTHS


def count_expired(expiry_dates: Iterable[DateLike], today: Optional[date] = None) -> int:
    """Count dates on or before today. Missing dates are not counted."""
    ref = today or _today()
    count = 0
    for value in expiry_dates:
        parsed = parse_date(value)
        if parsed is not None and parsed <= ref:
            count += 1
    return count


def is_outdated(current_version: Optional[str], latest_version: Optional[str]) -> bool:
    """True when an installed version differs from the latest known version."""
    if not latest_version:
        return False
    return (current_version or "").strip() != latest_version.strip()
