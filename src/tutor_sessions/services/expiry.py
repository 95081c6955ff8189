"""Sweeper that cancels sessions nobody acted on in time."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from tutor_sessions.domain.errors import Conflict, InvalidTransition
from tutor_sessions.domain.sessions import CancelReason, SessionStatus, utcnow
from tutor_sessions.services.sessions import SessionRepository
from tutor_sessions.services.transitions import SessionStatusService

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Outcome of one sweep run."""

    expired_searching: int
    expired_payment: int
    skipped: int


@dataclass
class ExpiryService:
    """Cancels stale open requests and unpaid sessions."""

    repository: SessionRepository
    status_service: SessionStatusService
    clock: Callable[[], datetime] = utcnow
    searching_timeout_minutes: int = 30
    payment_timeout_minutes: int = 15

    def sweep(self) -> SweepResult:
        """Run one pass; sessions that changed meanwhile are skipped."""
        now = self.clock()
        searching_cutoff = now - timedelta(minutes=self.searching_timeout_minutes)
        payment_cutoff = now - timedelta(minutes=self.payment_timeout_minutes)
        expired_searching = 0
        expired_payment = 0
        skipped = 0

        candidates = self.repository.list_sessions_by_status(
            {SessionStatus.SEARCHING, SessionStatus.PENDING_PAYMENT}
        )
        for session in candidates:
            if session.status == SessionStatus.SEARCHING:
                # Scheduled slots stay open until their start time.
                deadline = session.scheduled_start_time or session.created_at
                if deadline > searching_cutoff:
                    continue
                reason = CancelReason.NO_TUTOR_FOUND
            else:
                if (session.updated_at or session.created_at) > payment_cutoff:
                    continue
                reason = CancelReason.PAYMENT_EXPIRED
            try:
                self.status_service.cancel(
                    session.id,
                    reason=reason,
                    actor_id="sweeper",
                    expected_version=session.version,
                )
            except (Conflict, InvalidTransition):
                skipped += 1
                continue
            if reason == CancelReason.NO_TUTOR_FOUND:
                expired_searching += 1
            else:
                expired_payment += 1

        _logger.info(
            "Sweep finished: searching=%s payment=%s skipped=%s",
            expired_searching,
            expired_payment,
            skipped,
        )
        return SweepResult(
            expired_searching=expired_searching,
            expired_payment=expired_payment,
            skipped=skipped,
        )
