"""Session status state machine.

Every change to ``status``, ``payment_status``, ``actual_start_time`` or
``end_time`` is computed here. :class:`StatusTransitionValidator` is pure: it
turns (current session, requested status) into a dict of field changes or
raises. :class:`SessionStatusService` applies those changes through the
repository's version-checked conditional update.
"""

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
    PaymentStatus,
    Session,
    SessionStatus,
    utcnow,
)
from tutor_sessions.services.audit import AuditService
from tutor_sessions.services.sessions import SessionRepository

_logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.SEARCHING: frozenset(
        {SessionStatus.PENDING_PAYMENT, SessionStatus.CANCELLED}
    ),
    SessionStatus.PENDING_TUTOR_APPROVAL: frozenset(
        {SessionStatus.PENDING_PAYMENT, SessionStatus.CANCELLED}
    ),
    SessionStatus.PENDING_PAYMENT: frozenset(
        {SessionStatus.PAID_WAITING, SessionStatus.CANCELLED}
    ),
    SessionStatus.PAID_WAITING: frozenset(
        {SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED}
    ),
    SessionStatus.IN_PROGRESS: frozenset(
        {SessionStatus.COMPLETED, SessionStatus.CANCELLED}
    ),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class StatusTransitionValidator:
    """Decides whether a status change is legal and what it writes."""

    transitions: dict[SessionStatus, frozenset[SessionStatus]] = field(
        default_factory=lambda: dict(ALLOWED_TRANSITIONS)
    )

    def is_allowed(self, current: SessionStatus, target: SessionStatus) -> bool:
        return target in self.transitions.get(current, frozenset())

    def is_repeat(self, session: Session, target: SessionStatus) -> bool:
        """Return true for a start signal on a session that already started."""
        return (
            target == SessionStatus.IN_PROGRESS
            and session.status == SessionStatus.IN_PROGRESS
        )

    def plan(  # noqa: PLR0913
        self,
        session: Session,
        target: SessionStatus,
        *,
        now: datetime,
        tutor_id: str | None = None,
        reason: CancelReason | None = None,
        payment_transaction_id: str | None = None,
    ) -> dict[str, object]:
        """Return the field changes for moving ``session`` to ``target``.

        Raises InvalidTransition when the move is not in the transition table
        or when a payment failure arrives for a session not awaiting payment.
        """
        if not self.is_allowed(session.status, target):
            raise InvalidTransition(session.id, session.status, target)
        if (
            reason == CancelReason.PAYMENT_FAILED
            and session.status != SessionStatus.PENDING_PAYMENT
        ):
            raise InvalidTransition(
                session.id,
                session.status,
                target,
                message=(
                    f"Session {session.id} is not awaiting payment, "
                    "a payment failure cannot cancel it"
                ),
            )

        changes: dict[str, object] = {"status": target, "updated_at": now}
        if target == SessionStatus.PENDING_PAYMENT:
            if not tutor_id:
                raise InvalidRequest("A tutor id is required to accept a session")
            changes["tutor_id"] = tutor_id
        elif target == SessionStatus.PAID_WAITING:
            changes["payment_status"] = PaymentStatus.SUCCESS
            if payment_transaction_id:
                changes["payment_transaction_id"] = payment_transaction_id
        elif target == SessionStatus.IN_PROGRESS:
            if session.payment_status != PaymentStatus.SUCCESS:
                raise InvalidTransition(
                    session.id,
                    session.status,
                    target,
                    message=(
                        f"Session {session.id} cannot start before payment succeeds"
                    ),
                )
            if session.actual_start_time is None:
                changes["actual_start_time"] = now
        elif target == SessionStatus.COMPLETED:
            changes["end_time"] = now
        elif target == SessionStatus.CANCELLED:
            changes["end_time"] = now
            changes["cancel_reason"] = reason or CancelReason.CANCELLED_BY_USER
            if reason == CancelReason.PAYMENT_FAILED:
                changes["payment_status"] = PaymentStatus.FAILED
        return changes


@dataclass
class SessionStatusService:
    """Applies validated status changes with optimistic concurrency."""

    repository: SessionRepository
    audit_service: AuditService
    validator: StatusTransitionValidator = field(
        default_factory=StatusTransitionValidator
    )
    clock: Callable[[], datetime] = utcnow
    max_attempts: int = 3

    def update_status(
        self,
        session_id: UUID,
        target: SessionStatus,
        *,
        actor_id: str | None = None,
        reason: CancelReason | None = None,
    ) -> Session:
        """Move a session to ``target`` (payment, start, end or cancel)."""
        return self._apply(session_id, target, actor_id=actor_id, reason=reason)

    def record_payment(
        self,
        session_id: UUID,
        *,
        succeeded: bool,
        transaction_id: str | None = None,
    ) -> Session:
        """Translate a payment gateway outcome into a status change."""
        if succeeded:
            return self._apply(
                session_id,
                SessionStatus.PAID_WAITING,
                payment_transaction_id=transaction_id,
            )
        return self._apply(
            session_id,
            SessionStatus.CANCELLED,
            reason=CancelReason.PAYMENT_FAILED,
        )

    def cancel(
        self,
        session_id: UUID,
        *,
        reason: CancelReason = CancelReason.CANCELLED_BY_USER,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> Session:
        """Cancel any non-terminal session.

        With ``expected_version`` the cancel only applies to that exact
        snapshot and raises Conflict if the session moved on.
        """
        return self._apply(
            session_id,
            SessionStatus.CANCELLED,
            actor_id=actor_id,
            reason=reason,
            expected_version=expected_version,
        )

    def _apply(
        self,
        session_id: UUID,
        target: SessionStatus,
        *,
        actor_id: str | None = None,
        reason: CancelReason | None = None,
        payment_transaction_id: str | None = None,
        expected_version: int | None = None,
    ) -> Session:
        for attempt in range(1, self.max_attempts + 1):
            session = self.repository.get_session(session_id)
            if session is None:
                raise NotFound(session_id)
            if expected_version is not None and session.version != expected_version:
                raise Conflict(session_id, f"Session {session_id} has changed")
            if target == SessionStatus.PENDING_PAYMENT:
                raise InvalidTransition(
                    session_id,
                    session.status,
                    target,
                    message="Sessions are accepted through the accept endpoint",
                )
            if self.validator.is_repeat(session, target):
                return session
            try:
                changes = self.validator.plan(
                    session,
                    target,
                    now=self.clock(),
                    reason=reason,
                    payment_transaction_id=payment_transaction_id,
                )
            except InvalidTransition as exc:
                _logger.info("Rejected status change: %s", exc)
                raise
            updated = self.repository.conditional_update(
                session_id, session.version, changes
            )
            if updated is not None:
                self.audit_service.record_change(
                    f"status:{target}", session, updated, actor_id=actor_id
                )
                _logger.info(
                    "Session %s moved %s -> %s", session_id, session.status, target
                )
                return updated
            _logger.info(
                "Status change lost a write race: session_id=%s target=%s attempt=%s",
                session_id,
                target,
                attempt,
            )
        raise Conflict(session_id, f"Session {session_id} is changing, try again")
