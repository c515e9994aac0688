"""
auth/dependencies.py -- FastAPI Depends() helpers for the console session.

try_get_session() is the soft variant (returns the anonymous session on any
failure). require_session() wraps it and raises HTTP 401 if unauthenticated.
require_page() is the page guard used by web routes: it returns a
RedirectResponse when the navigation must not render, or None.

Layer rule: no imports from web/ or inventory/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import RedirectResponse

from auth.access import guard, resume_target
from auth.session import SESSION_COOKIE, Session, decode_session


def try_get_session(request: Request) -> Session:
    """Read the session cookie. Never raises -- a bad cookie means anonymous."""
    return decode_session(request.cookies.get(SESSION_COOKIE))


def require_session(request: Request) -> Session:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: Session = Depends(require_session)): ...
    """
    session = try_get_session(request)
    if not session.is_authenticated:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return session


def require_page(request: Request) -> Optional[RedirectResponse]:
    """Run the route guard for the current path.

    Returns a 302 RedirectResponse to /auth?next=<resume_target> when
    unauthenticated, to /dashboard when the role is not on the page's
    allow-list, None if OK.
    Call at the top of protected route handlers:
        if redirect := require_page(request):
            return redirect
    """
    session = try_get_session(request)
    path = request.url.path
    next_url = resume_target(request.method, path, request.url.query)
    target = guard(session.is_authenticated, session.role, path, next_url)
    if target is None:
        return None
    # A cookie that no longer decodes is an expired (or tampered) session.
    stale = not session.is_authenticated and SESSION_COOKIE in request.cookies
    if stale:
        target += "&error=session_expired"
    resp = RedirectResponse(target, status_code=302)
    if stale:
        resp.delete_cookie(SESSION_COOKIE)
    return resp
