"""Pydantic models for the session HTTP API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tutor_sessions.domain.sessions import (
    CancelReason,
    MeetingType,
    PaymentStatus,
    Session,
    SessionRequest,
    SessionStatus,
    SharedDocument,
)
from tutor_sessions.domain.tutors import TutorProfile


class ApiModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateSessionBody(ApiModel):
    """Booking request payload."""

    student_id: str
    topic: str
    duration_limit_minutes: int
    meeting_type: MeetingType | None = None
    tutor_id: str | None = None
    scheduled_start_time: datetime | None = None

    def to_request(self) -> SessionRequest:
        return SessionRequest(
            student_id=self.student_id,
            topic=self.topic,
            duration_limit_minutes=self.duration_limit_minutes,
            meeting_type=self.meeting_type,
            tutor_id=self.tutor_id,
            scheduled_start_time=self.scheduled_start_time,
        )


class TutorActionBody(ApiModel):
    """Accept or decline payload."""

    tutor_id: str


class StatusUpdateBody(ApiModel):
    """Generic status change payload."""

    status: SessionStatus
    reason: CancelReason | None = None
    actor_id: str | None = None


class PaymentBody(ApiModel):
    """Payment gateway outcome."""

    succeeded: bool
    transaction_id: str | None = None


class DocumentBody(ApiModel):
    """Shared document upload."""

    name: str
    url: str
    uploaded_by: str


class DocumentResponse(ApiModel):
    name: str
    url: str
    uploaded_by: str
    uploaded_at: datetime

    @classmethod
    def from_domain(cls, document: SharedDocument) -> "DocumentResponse":
        return cls(
            name=document.name,
            url=document.url,
            uploaded_by=document.uploaded_by,
            uploaded_at=document.uploaded_at,
        )


class SessionResponse(ApiModel):
    """Session as returned to clients."""

    id: UUID
    student_id: str
    tutor_id: str | None = None
    requested_tutor_id: str | None = None
    topic: str
    meeting_type: MeetingType
    status: SessionStatus
    payment_status: PaymentStatus
    payment_transaction_id: str | None = None
    duration_limit_minutes: int
    scheduled_start_time: datetime | None = None
    actual_start_time: datetime | None = None
    end_time: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    cancel_reason: str | None = None
    shared_documents: list[DocumentResponse] = Field(default_factory=list)
    version: int

    @classmethod
    def from_domain(cls, session: Session) -> "SessionResponse":
        return cls(
            id=session.id,
            student_id=session.student_id,
            tutor_id=session.tutor_id,
            requested_tutor_id=session.requested_tutor_id,
            topic=session.topic,
            meeting_type=session.meeting_type,
            status=session.status,
            payment_status=session.payment_status,
            payment_transaction_id=session.payment_transaction_id,
            duration_limit_minutes=session.duration_limit_minutes,
            scheduled_start_time=session.scheduled_start_time,
            actual_start_time=session.actual_start_time,
            end_time=session.end_time,
            created_at=session.created_at,
            updated_at=session.updated_at,
            cancel_reason=session.cancel_reason,
            shared_documents=[
                DocumentResponse.from_domain(document)
                for document in session.shared_documents
            ],
            version=session.version,
        )


class TutorResponse(ApiModel):
    id: str
    display_name: str
    subjects: list[str]
    hourly_rate: int

    @classmethod
    def from_domain(cls, tutor: TutorProfile) -> "TutorResponse":
        return cls(
            id=tutor.id,
            display_name=tutor.display_name,
            subjects=list(tutor.subjects),
            hourly_rate=tutor.hourly_rate,
        )


def sessions_response(sessions: list[Session]) -> list[SessionResponse]:
    return [SessionResponse.from_domain(session) for session in sessions]
