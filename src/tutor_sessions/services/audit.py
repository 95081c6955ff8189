"""Audit trail for session mutations."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from tutor_sessions.domain.sessions import Session

_logger = logging.getLogger(__name__)


class AuditRepository(Protocol):
    """Persistence interface for audit events."""

    def create_event(  # noqa: PLR0913
        self,
        session_id: UUID,
        event_type: str,
        actor_id: str | None,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        """Create an audit event row."""

    def list_events(self, session_id: UUID, limit: int) -> list[dict[str, object]]:
        """Return recent audit events for a session."""


@dataclass
class AuditService:
    """Service for recording session audit events."""

    repository: AuditRepository

    def record_change(
        self,
        event_type: str,
        before: Session | None,
        after: Session,
        actor_id: str | None = None,
    ) -> None:
        """Persist a before/after snapshot of a session mutation.

        Runs after the session write has committed; audit store failures are
        logged and the committed write stands.
        """
        try:
            self.repository.create_event(
                session_id=after.id,
                event_type=event_type,
                actor_id=actor_id,
                before=_snapshot(before) if before else None,
                after=_snapshot(after),
            )
        except Exception:
            _logger.exception(
                "Failed to record audit event %s for session %s",
                event_type,
                after.id,
            )

    def list_events(self, session_id: UUID, limit: int = 50) -> list[dict[str, object]]:
        """Return recent events for a session."""
        return self.repository.list_events(session_id, limit)


def _snapshot(session: Session) -> dict[str, object]:
    return {
        "status": str(session.status),
        "payment_status": str(session.payment_status),
        "tutor_id": session.tutor_id,
        "version": session.version,
    }
