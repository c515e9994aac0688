"""
auth/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount SlowAPIMiddleware) and
web/routes.py (to apply the login limit with @limiter.limit()). It lives in
auth/ because both layers may import auth/ without importing each other.

Using a single shared instance ensures all routes share the same in-memory
counter store. RATE_LIMIT_ENABLED=false turns every limit into a no-op.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=get_settings().rate_limit_enabled,
)
