"""Domain models for tutoring sessions."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


class SessionStatus(StrEnum):
    """Session lifecycle status."""

    SEARCHING = "searching"
    PENDING_TUTOR_APPROVAL = "pending_tutor_approval"
    PENDING_PAYMENT = "pending_payment"
    PAID_WAITING = "paid_waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    """Payment state tracked alongside the session status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class MeetingType(StrEnum):
    """How the session was requested."""

    ON_DEMAND = "on_demand"
    SCHEDULED = "scheduled"


class CancelReason(StrEnum):
    """Why a session ended up cancelled."""

    CANCELLED_BY_USER = "cancelled_by_user"
    TUTOR_DECLINED = "tutor_declined"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_EXPIRED = "payment_expired"
    NO_TUTOR_FOUND = "no_tutor_found"


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED})
UNCLAIMED_STATUSES = frozenset(
    {SessionStatus.SEARCHING, SessionStatus.PENDING_TUTOR_APPROVAL}
)


@dataclass(frozen=True)
class SharedDocument:
    """A document shared into a session."""

    name: str
    url: str
    uploaded_by: str
    uploaded_at: datetime


@dataclass(frozen=True)
class SessionRequest:
    """Booking input submitted by a student."""

    student_id: str
    topic: str
    duration_limit_minutes: int
    meeting_type: MeetingType | None = None
    tutor_id: str | None = None
    scheduled_start_time: datetime | None = None


@dataclass(frozen=True)
class NewSession:
    """Validated fields for a session that is about to be stored."""

    student_id: str
    topic: str
    meeting_type: MeetingType
    status: SessionStatus
    duration_limit_minutes: int
    created_at: datetime
    requested_tutor_id: str | None = None
    scheduled_start_time: datetime | None = None


@dataclass(frozen=True)
class Session:
    """Represents a persisted tutoring session."""

    id: UUID
    student_id: str
    topic: str
    meeting_type: MeetingType
    status: SessionStatus
    payment_status: PaymentStatus
    duration_limit_minutes: int
    created_at: datetime
    version: int
    tutor_id: str | None = None
    requested_tutor_id: str | None = None
    scheduled_start_time: datetime | None = None
    actual_start_time: datetime | None = None
    end_time: datetime | None = None
    updated_at: datetime | None = None
    payment_transaction_id: str | None = None
    cancel_reason: str | None = None
    shared_documents: tuple[SharedDocument, ...] = field(default_factory=tuple)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_direct_request(self) -> bool:
        return self.requested_tutor_id is not None
