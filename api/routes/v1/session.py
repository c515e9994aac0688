"""
api/routes/v1/session.py -- Role-gate state for scripts and client widgets.

GET /api/v1/session reports whether the caller's cookie holds a live session,
its role, and the navigation entries that role may see. It never fails: an
absent or invalid cookie reports the anonymous GUEST state.
"""

from fastapi import APIRouter, Request

from api.models import NavItemResponse, SessionResponse
from auth.access import visible_nav
from auth.dependencies import try_get_session

router = APIRouter()


@router.get("/session", response_model=SessionResponse)
def get_session(request: Request) -> SessionResponse:
    session = try_get_session(request)
    navigation = []
    if session.is_authenticated:
        navigation = [NavItemResponse(path=item.path, label=item.label) for item in visible_nav(session.role)]
    return SessionResponse(
        is_authenticated=session.is_authenticated,
        role=session.role,
        navigation=navigation,
    )
