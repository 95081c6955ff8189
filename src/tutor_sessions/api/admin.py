"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from tutor_sessions.api.models import sessions_response

if TYPE_CHECKING:
    from tutor_sessions.containers import AppContainer

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


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/sessions", dependencies=[Depends(require_admin)])
def list_sessions(request: Request, limit: int = 20) -> dict[str, object]:
    """Return the most recently created sessions."""
    container: AppContainer = request.app.state.container
    sessions = container.query_service.list_recent(limit)
    return {
        "sessions": [
            item.model_dump(mode="json", by_alias=True)
            for item in sessions_response(sessions)
        ]
    }


@router.get("/sessions/{session_id}/events", dependencies=[Depends(require_admin)])
def session_events(
    session_id: UUID, request: Request, limit: int = 50
) -> dict[str, object]:
    """Return the audit trail of a session."""
    container: AppContainer = request.app.state.container
    container.query_service.get_session(session_id)
    return {"events": container.audit_service.list_events(session_id, limit)}


@router.post("/sweep", dependencies=[Depends(require_admin)])
def sweep(request: Request) -> dict[str, int]:
    """Cancel searching and unpaid sessions past their timeout."""
    container: AppContainer = request.app.state.container
    result = container.expiry_service.sweep()
    return {
        "expiredSearching": result.expired_searching,
        "expiredPayment": result.expired_payment,
        "skipped": result.skipped,
    }
