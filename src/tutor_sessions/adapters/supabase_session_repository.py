"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from supabase import Client

from tutor_sessions.domain.sessions import (
    MeetingType,
    NewSession,
    PaymentStatus,
    Session,
    SessionStatus,
    SharedDocument,
)
from tutor_sessions.services.sessions import SessionRepository

_TABLE = "tutoring_sessions"
_COLUMNS = (
    "id, student_id, tutor_id, requested_tutor_id, topic, meeting_type, status, "
    "payment_status, payment_transaction_id, duration_limit_minutes, "
    "scheduled_start_time, actual_start_time, end_time, created_at, updated_at, "
    "cancel_reason, shared_documents, version"
)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for tutoring sessions."""

    client: Client

    def create_session(self, new_session: NewSession) -> Session:
        """Create a session row at version 1 and return it."""
        response = (
            self.client.table(_TABLE)
            .insert(
                {
                    "student_id": new_session.student_id,
                    "requested_tutor_id": new_session.requested_tutor_id,
                    "topic": new_session.topic,
                    "meeting_type": str(new_session.meeting_type),
                    "status": str(new_session.status),
                    "payment_status": str(PaymentStatus.PENDING),
                    "duration_limit_minutes": new_session.duration_limit_minutes,
                    "scheduled_start_time": _format_datetime(
                        new_session.scheduled_start_time
                    ),
                    "created_at": new_session.created_at.isoformat(),
                    "shared_documents": [],
                    "version": 1,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create session")
        return _row_to_session(response.data[0])

    def get_session(self, session_id: UUID) -> Session | None:
        """Return a session by id, if present."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_session(response.data[0])

    def conditional_update(
        self, session_id: UUID, expected_version: int, changes: dict[str, object]
    ) -> Session | None:
        """Update the row only while its version still equals ``expected_version``."""
        payload = {key: _serialize(value) for key, value in changes.items()}
        payload["version"] = expected_version + 1
        response = (
            self.client.table(_TABLE)
            .update(payload)
            .eq("id", str(session_id))
            .eq("version", expected_version)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_session(response.data[0])

    def list_sessions_by_status(
        self, statuses: set[SessionStatus]
    ) -> list[Session]:
        """Return sessions in the given statuses, newest first."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .in_("status", sorted(str(status) for status in statuses))
            .order("created_at", desc=True)
            .execute()
        )
        return [_row_to_session(row) for row in response.data or []]

    def list_student_sessions(
        self, student_id: str, status: SessionStatus | None = None
    ) -> list[Session]:
        """Return a student's sessions, newest first."""
        query = self.client.table(_TABLE).select(_COLUMNS).eq("student_id", student_id)
        if status is not None:
            query = query.eq("status", str(status))
        response = query.order("created_at", desc=True).execute()
        return [_row_to_session(row) for row in response.data or []]

    def list_tutor_sessions(
        self, tutor_id: str, status: SessionStatus | None = None
    ) -> list[Session]:
        """Return sessions owned by a tutor, newest first."""
        query = self.client.table(_TABLE).select(_COLUMNS).eq("tutor_id", tutor_id)
        if status is not None:
            query = query.eq("status", str(status))
        response = query.order("created_at", desc=True).execute()
        return [_row_to_session(row) for row in response.data or []]

    def list_booking_requests(self, tutor_id: str) -> list[Session]:
        """Return direct requests awaiting this tutor's approval."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("requested_tutor_id", tutor_id)
            .eq("status", str(SessionStatus.PENDING_TUTOR_APPROVAL))
            .order("scheduled_start_time")
            .execute()
        )
        return [_row_to_session(row) for row in response.data or []]

    def list_recent_sessions(self, limit: int) -> list[Session]:
        """Return the most recently created sessions."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_row_to_session(row) for row in response.data or []]


def _serialize(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, tuple):
        return [_document_to_json(document) for document in value]
    return value


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_datetime(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def _document_to_json(document: SharedDocument) -> dict[str, object]:
    return {
        "name": document.name,
        "url": document.url,
        "uploaded_by": document.uploaded_by,
        "uploaded_at": document.uploaded_at.isoformat(),
    }


def _row_to_session(row: dict[str, object]) -> Session:
    documents = tuple(
        SharedDocument(
            name=item["name"],
            url=item["url"],
            uploaded_by=item["uploaded_by"],
            uploaded_at=datetime.fromisoformat(item["uploaded_at"]),
        )
        for item in row.get("shared_documents") or []
    )
    return Session(
        id=UUID(str(row["id"])),
        student_id=row["student_id"],
        topic=row["topic"],
        meeting_type=MeetingType(row["meeting_type"]),
        status=SessionStatus(row["status"]),
        payment_status=PaymentStatus(row["payment_status"]),
        duration_limit_minutes=int(row["duration_limit_minutes"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        version=int(row["version"]),
        tutor_id=row.get("tutor_id"),
        requested_tutor_id=row.get("requested_tutor_id"),
        scheduled_start_time=_parse_datetime(row.get("scheduled_start_time")),
        actual_start_time=_parse_datetime(row.get("actual_start_time")),
        end_time=_parse_datetime(row.get("end_time")),
        updated_at=_parse_datetime(row.get("updated_at")),
        payment_transaction_id=row.get("payment_transaction_id"),
        cancel_reason=row.get("cancel_reason"),
        shared_documents=documents,
    )
