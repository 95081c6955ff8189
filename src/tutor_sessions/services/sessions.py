"""Session store interface and read-side session queries."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from tutor_sessions.domain.errors import Conflict, InvalidRequest, NotFound
from tutor_sessions.domain.sessions import (
    NewSession,
    Session,
    SessionStatus,
    SharedDocument,
    utcnow,
)
from tutor_sessions.services.audit import AuditService
from tutor_sessions.services.matching import (
    session_matches_subjects,
    session_matches_tutor,
)
from tutor_sessions.services.tutors import TutorDirectory

_logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for tutoring sessions."""

    def create_session(self, new_session: NewSession) -> Session:
        """Store a new session at version 1 and return it."""

    def get_session(self, session_id: UUID) -> Session | None:
        """Return a session by id, if present."""

    def conditional_update(
        self, session_id: UUID, expected_version: int, changes: dict[str, object]
    ) -> Session | None:
        """Apply ``changes`` only if the stored version equals ``expected_version``.

        The write must be a single atomic conditional update that also bumps
        the version. Returns the updated session, or None when the version no
        longer matches.
        """

    def list_sessions_by_status(
        self, statuses: set[SessionStatus]
    ) -> list[Session]:
        """Return sessions in any of the given statuses, newest first."""

    def list_student_sessions(
        self, student_id: str, status: SessionStatus | None = None
    ) -> list[Session]:
        """Return a student's sessions, newest first."""

    def list_tutor_sessions(
        self, tutor_id: str, status: SessionStatus | None = None
    ) -> list[Session]:
        """Return sessions owned by a tutor, newest first."""

    def list_booking_requests(self, tutor_id: str) -> list[Session]:
        """Return direct requests awaiting this tutor's approval."""

    def list_recent_sessions(self, limit: int) -> list[Session]:
        """Return the most recently created sessions."""


@dataclass
class SessionQueryService:
    """Read-side queries and document sharing for sessions."""

    repository: SessionRepository
    directory: TutorDirectory
    audit_service: AuditService
    clock: Callable[[], datetime] = utcnow
    document_attempts: int = 3

    def get_session(self, session_id: UUID) -> Session:
        """Return a session or raise NotFound."""
        session = self.repository.get_session(session_id)
        if session is None:
            raise NotFound(session_id)
        return session

    def list_available(
        self, tutor_id: str | None = None, subject: str | None = None
    ) -> list[Session]:
        """Return sessions a tutor could claim right now.

        Open ``searching`` sessions are always listed; when ``tutor_id`` is a
        known tutor they are narrowed to the tutor's subjects and the tutor's
        own direct requests are appended. The listing is a snapshot: callers
        must still go through the claim path.
        """
        open_sessions = self.repository.list_sessions_by_status(
            {SessionStatus.SEARCHING}
        )
        if subject:
            open_sessions = [
                session
                for session in open_sessions
                if session_matches_subjects(session, [subject])
            ]
        if tutor_id is None:
            return open_sessions

        tutor = self.directory.get_tutor(tutor_id)
        if tutor is not None:
            open_sessions = [
                session
                for session in open_sessions
                if session_matches_tutor(session, tutor)
            ]
        open_sessions = [s for s in open_sessions if s.student_id != tutor_id]
        return open_sessions + self.repository.list_booking_requests(tutor_id)

    def list_student_sessions(
        self, student_id: str, status: SessionStatus | None = None
    ) -> list[Session]:
        return self.repository.list_student_sessions(student_id, status)

    def list_tutor_sessions(
        self, tutor_id: str, status: SessionStatus | None = None
    ) -> list[Session]:
        return self.repository.list_tutor_sessions(tutor_id, status)

    def list_booking_requests(self, tutor_id: str) -> list[Session]:
        """Return pending direct requests ordered by requested start time."""
        requests = self.repository.list_booking_requests(tutor_id)
        return sorted(
            requests,
            key=lambda session: session.scheduled_start_time or session.created_at,
        )

    def list_recent(self, limit: int = 20) -> list[Session]:
        return self.repository.list_recent_sessions(limit)

    def add_document(
        self, session_id: UUID, name: str, url: str, uploaded_by: str
    ) -> SharedDocument:
        """Attach a shared document to a session."""
        if not name.strip() or not url.strip() or not uploaded_by.strip():
            raise InvalidRequest("name, url and uploadedBy are required")
        document = SharedDocument(
            name=name.strip(),
            url=url.strip(),
            uploaded_by=uploaded_by,
            uploaded_at=self.clock(),
        )
        for _ in range(self.document_attempts):
            session = self.get_session(session_id)
            if session.status == SessionStatus.CANCELLED:
                raise InvalidRequest("Cannot share documents in a cancelled session")
            updated = self.repository.conditional_update(
                session_id,
                session.version,
                {
                    "shared_documents": (*session.shared_documents, document),
                    "updated_at": document.uploaded_at,
                },
            )
            if updated is not None:
                self.audit_service.record_change(
                    "document_shared", session, updated, actor_id=uploaded_by
                )
                return document
            _logger.info("Document upload raced, retrying: session_id=%s", session_id)
        raise Conflict(session_id, "Session is being modified, try again")
