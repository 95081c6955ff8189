"""Session booking."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from tutor_sessions.domain.errors import InvalidRequest
from tutor_sessions.domain.sessions import (
    MeetingType,
    NewSession,
    Session,
    SessionRequest,
    SessionStatus,
    utcnow,
)
from tutor_sessions.services.audit import AuditService
from tutor_sessions.services.sessions import SessionRepository
from tutor_sessions.services.tutors import TutorDirectory

_logger = logging.getLogger(__name__)


@dataclass
class BookingService:
    """Creates sessions for the three booking modes.

    * open search: no target tutor, on demand -> ``searching``
    * marketplace slot: no target tutor, future start -> ``searching``
    * direct request: target tutor -> ``pending_tutor_approval``
    """

    repository: SessionRepository
    directory: TutorDirectory
    audit_service: AuditService
    clock: Callable[[], datetime] = utcnow
    max_duration_minutes: int = 180

    def create_session(self, request: SessionRequest) -> Session:
        """Validate a booking request and store the new session."""
        new_session = self._build(request)
        session = self.repository.create_session(new_session)
        self.audit_service.record_change(
            "created", None, session, actor_id=request.student_id
        )
        _logger.info(
            "Session %s created: status=%s meeting_type=%s",
            session.id,
            session.status,
            session.meeting_type,
        )
        return session

    def _build(self, request: SessionRequest) -> NewSession:
        now = self.clock()
        student_id = request.student_id.strip() if request.student_id else ""
        if not student_id:
            raise InvalidRequest("studentId is required")
        topic = request.topic.strip() if request.topic else ""
        if not topic:
            raise InvalidRequest("topic must not be empty")
        if request.duration_limit_minutes <= 0:
            raise InvalidRequest("durationLimitMinutes must be positive")
        if request.duration_limit_minutes > self.max_duration_minutes:
            raise InvalidRequest(
                f"durationLimitMinutes must be at most {self.max_duration_minutes}"
            )

        scheduled_start = _as_utc(request.scheduled_start_time)
        if scheduled_start is not None and scheduled_start < now:
            raise InvalidRequest("scheduledStartTime must not be in the past")
        meeting_type = request.meeting_type or (
            MeetingType.SCHEDULED if scheduled_start else MeetingType.ON_DEMAND
        )
        if meeting_type == MeetingType.SCHEDULED and scheduled_start is None:
            raise InvalidRequest("Scheduled sessions need a scheduledStartTime")
        if meeting_type == MeetingType.ON_DEMAND and scheduled_start is not None:
            raise InvalidRequest("On-demand sessions cannot have a scheduledStartTime")

        tutor_id = request.tutor_id.strip() if request.tutor_id else None
        if tutor_id:
            if tutor_id == student_id:
                raise InvalidRequest("A student cannot book a session with themselves")
            tutor = self.directory.get_tutor(tutor_id)
            if tutor is None or not tutor.is_active:
                raise InvalidRequest(f"Tutor {tutor_id} is not available")
            status = SessionStatus.PENDING_TUTOR_APPROVAL
        else:
            tutor_id = None
            status = SessionStatus.SEARCHING

        return NewSession(
            student_id=student_id,
            topic=topic,
            meeting_type=meeting_type,
            status=status,
            duration_limit_minutes=request.duration_limit_minutes,
            created_at=now,
            requested_tutor_id=tutor_id,
            scheduled_start_time=scheduled_start,
        )


def _as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
