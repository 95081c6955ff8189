"""Tutor acceptance and decline of session requests."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from tutor_sessions.domain.errors import (
    Conflict,
    InvalidRequest,
    InvalidTransition,
    NotFound,
)
from tutor_sessions.domain.sessions import (
    CancelReason,
    Session,
    SessionStatus,
    utcnow,
)
from tutor_sessions.services.audit import AuditService
from tutor_sessions.services.sessions import SessionRepository
from tutor_sessions.services.transitions import StatusTransitionValidator

_logger = logging.getLogger(__name__)


@dataclass
class ClaimCoordinator:
    """Arbitrates competing accept attempts so one tutor owns a session.

    Claims are a single version-checked write. A claim that loses the race is
    reported as Conflict and is never retried here; the caller re-fetches and
    tells the tutor the request is taken.
    """

    repository: SessionRepository
    audit_service: AuditService
    validator: StatusTransitionValidator = field(
        default_factory=StatusTransitionValidator
    )
    clock: Callable[[], datetime] = utcnow

    def try_claim(self, session_id: UUID, tutor_id: str) -> Session:
        """Make ``tutor_id`` the owner of an open or addressed session."""
        if not tutor_id or not tutor_id.strip():
            raise InvalidRequest("tutorId is required")
        session = self._load(session_id)

        if session.is_terminal:
            raise InvalidTransition(
                session_id, session.status, SessionStatus.PENDING_PAYMENT
            )
        if (
            session.status == SessionStatus.PENDING_PAYMENT
            and session.tutor_id == tutor_id
        ):
            return session
        if session.status == SessionStatus.SEARCHING:
            if session.student_id == tutor_id:
                raise InvalidRequest("A student cannot accept their own request")
        elif session.status == SessionStatus.PENDING_TUTOR_APPROVAL:
            if session.requested_tutor_id != tutor_id:
                raise self._conflict(
                    session, tutor_id, "Session was requested from another tutor"
                )
        else:
            raise self._conflict(session, tutor_id, "Session has already been taken")

        changes = self.validator.plan(
            session,
            SessionStatus.PENDING_PAYMENT,
            now=self.clock(),
            tutor_id=tutor_id,
        )
        updated = self.repository.conditional_update(
            session_id, session.version, changes
        )
        if updated is None:
            raise self._conflict(session, tutor_id, "Session has already been taken")

        self.audit_service.record_change("claimed", session, updated, actor_id=tutor_id)
        _logger.info("Session %s claimed by tutor %s", session_id, tutor_id)
        return updated

    def decline(self, session_id: UUID, tutor_id: str) -> Session:
        """Decline a request.

        Declining a direct request cancels it. Declining an open request only
        hides it from this tutor's point of view; the session keeps searching.
        """
        session = self._load(session_id)
        if session.status == SessionStatus.SEARCHING:
            _logger.debug("Tutor %s passed on open session %s", tutor_id, session_id)
            return session
        if session.status != SessionStatus.PENDING_TUTOR_APPROVAL:
            raise InvalidTransition(
                session_id, session.status, SessionStatus.CANCELLED
            )
        if session.requested_tutor_id != tutor_id:
            raise self._conflict(
                session, tutor_id, "Session was requested from another tutor"
            )

        changes = self.validator.plan(
            session,
            SessionStatus.CANCELLED,
            now=self.clock(),
            reason=CancelReason.TUTOR_DECLINED,
        )
        updated = self.repository.conditional_update(
            session_id, session.version, changes
        )
        if updated is None:
            raise self._conflict(session, tutor_id, "Session changed while declining")

        self.audit_service.record_change(
            "declined", session, updated, actor_id=tutor_id
        )
        _logger.info("Session %s declined by tutor %s", session_id, tutor_id)
        return updated

    def _load(self, session_id: UUID) -> Session:
        session = self.repository.get_session(session_id)
        if session is None:
            raise NotFound(session_id)
        return session

    def _conflict(self, session: Session, tutor_id: str, message: str) -> Conflict:
        _logger.info(
            "Claim conflict: session_id=%s tutor_id=%s status=%s",
            session.id,
            tutor_id,
            session.status,
        )
        return Conflict(session.id, message)
