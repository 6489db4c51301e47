"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from date_planner.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/sessions/{session_id}/reset", dependencies=[Depends(require_admin)])
async def reset_session(session_id: UUID, request: Request) -> dict[str, object]:
    """Return a session to its initial active shape."""
    container: AppContainer = request.app.state.container
    return {"session": container.session_service.reset_session(session_id)}


@router.get("/sessions/{session_id}/diagnosis", dependencies=[Depends(require_admin)])
async def diagnose_session(session_id: UUID, request: Request) -> dict[str, object]:
    """Report stored inconsistencies without repairing them."""
    container: AppContainer = request.app.state.container
    diagnosis = container.session_service.diagnose_session(session_id)
    return {
        "session_id": session_id,
        "is_valid": diagnosis.is_valid,
        "issues": list(diagnosis.issues),
        "should_reset": diagnosis.should_reset,
    }


@router.post("/sessions/expire-stale", dependencies=[Depends(require_admin)])
async def expire_stale_sessions(request: Request) -> dict[str, int]:
    """Expire active sessions past their expiry time."""
    container: AppContainer = request.app.state.container
    return {"expired_sessions": container.session_service.expire_stale_sessions()}


@router.post(
    "/users/{user_id}/expire-sessions", dependencies=[Depends(require_admin)]
)
async def expire_user_sessions(user_id: UUID, request: Request) -> dict[str, int]:
    """Expire every active session involving a user."""
    container: AppContainer = request.app.state.container
    return {
        "expired_sessions": container.session_service.expire_user_sessions(user_id)
    }
