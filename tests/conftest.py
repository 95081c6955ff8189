"""Shared test fixtures."""

import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from tutor_sessions.config import Settings
from tutor_sessions.containers import AppContainer, wire_container
from tutor_sessions.domain.sessions import (
    MeetingType,
    NewSession,
    PaymentStatus,
    Session,
    SessionStatus,
)
from tutor_sessions.domain.tutors import TutorProfile
from tutor_sessions.services.audit import AuditRepository
from tutor_sessions.services.sessions import SessionRepository
from tutor_sessions.services.tutors import TutorRepository

START = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session store with an atomic version check."""

    sessions: dict[UUID, Session] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)
    update_calls: int = 0

    def create_session(self, new_session: NewSession) -> Session:
        session = Session(
            id=uuid4(),
            student_id=new_session.student_id,
            topic=new_session.topic,
            meeting_type=new_session.meeting_type,
            status=new_session.status,
            payment_status=PaymentStatus.PENDING,
            duration_limit_minutes=new_session.duration_limit_minutes,
            created_at=new_session.created_at,
            version=1,
            requested_tutor_id=new_session.requested_tutor_id,
            scheduled_start_time=new_session.scheduled_start_time,
        )
        with self.lock:
            self.sessions[session.id] = session
        return session

    def get_session(self, session_id: UUID) -> Session | None:
        return self.sessions.get(session_id)

    def conditional_update(
        self, session_id: UUID, expected_version: int, changes: dict[str, object]
    ) -> Session | None:
        with self.lock:
            self.update_calls += 1
            current = self.sessions.get(session_id)
            if current is None or current.version != expected_version:
                return None
            updated = replace(current, **changes, version=expected_version + 1)
            self.sessions[session_id] = updated
            return updated

    def list_sessions_by_status(self, statuses: set[SessionStatus]) -> list[Session]:
        return self._newest_first(
            s for s in self.sessions.values() if s.status in statuses
        )

    def list_student_sessions(
        self, student_id: str, status: SessionStatus | None = None
    ) -> list[Session]:
        return self._newest_first(
            s
            for s in self.sessions.values()
            if s.student_id == student_id and (status is None or s.status == status)
        )

    def list_tutor_sessions(
        self, tutor_id: str, status: SessionStatus | None = None
    ) -> list[Session]:
        return self._newest_first(
            s
            for s in self.sessions.values()
            if s.tutor_id == tutor_id and (status is None or s.status == status)
        )

    def list_booking_requests(self, tutor_id: str) -> list[Session]:
        return self._newest_first(
            s
            for s in self.sessions.values()
            if s.requested_tutor_id == tutor_id
            and s.status == SessionStatus.PENDING_TUTOR_APPROVAL
        )

    def list_recent_sessions(self, limit: int) -> list[Session]:
        return self._newest_first(self.sessions.values())[:limit]

    def put(self, session: Session) -> Session:
        self.sessions[session.id] = session
        return session

    @staticmethod
    def _newest_first(sessions) -> list[Session]:  # type: ignore[no-untyped-def]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)


@dataclass
class InMemoryTutorRepository(TutorRepository):
    """In-memory tutor directory for tests."""

    tutors: dict[str, TutorProfile] = field(default_factory=dict)
    list_calls: int = 0

    def get_tutor(self, tutor_id: str) -> TutorProfile | None:
        return self.tutors.get(tutor_id)

    def list_active_tutors(self) -> list[TutorProfile]:
        self.list_calls += 1
        return [tutor for tutor in self.tutors.values() if tutor.is_active]

    def add(self, tutor: TutorProfile) -> None:
        self.tutors[tutor.id] = tutor


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit repository for tests."""

    events: list[dict[str, object]] = field(default_factory=list)

    def create_event(  # noqa: PLR0913
        self,
        session_id: UUID,
        event_type: str,
        actor_id: str | None,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        self.events.append(
            {
                "session_id": str(session_id),
                "event_type": event_type,
                "actor_id": actor_id,
                "before_json": before,
                "after_json": after,
            }
        )

    def list_events(self, session_id: UUID, limit: int) -> list[dict[str, object]]:
        matching = [e for e in self.events if e["session_id"] == str(session_id)]
        return list(reversed(matching))[:limit]


def make_session(**overrides: object) -> Session:
    """Build a session in ``searching`` with sensible defaults."""
    values: dict[str, object] = {
        "id": uuid4(),
        "student_id": "student-1",
        "topic": "Algebra",
        "meeting_type": MeetingType.ON_DEMAND,
        "status": SessionStatus.SEARCHING,
        "payment_status": PaymentStatus.PENDING,
        "duration_limit_minutes": 60,
        "created_at": START,
        "version": 1,
    }
    values.update(overrides)
    return Session(**values)  # type: ignore[arg-type]


DEFAULT_TUTORS = (
    TutorProfile(
        id="tutor-maths",
        display_name="Asha",
        subjects=("Mathematics", "Physics"),
    ),
    TutorProfile(
        id="tutor-jee",
        display_name="Rohan",
        subjects=("JEE Mains – Maths",),
    ),
    TutorProfile(
        id="tutor-bio",
        display_name="Meera",
        subjects=("Biology",),
    ),
    TutorProfile(
        id="tutor-away",
        display_name="Kiran",
        subjects=("Algebra",),
        is_active=False,
    ),
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def tutor_repository() -> InMemoryTutorRepository:
    repository = InMemoryTutorRepository()
    for tutor in DEFAULT_TUTORS:
        repository.add(tutor)
    return repository


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    session_repository: InMemorySessionRepository,
    tutor_repository: InMemoryTutorRepository,
    audit_repository: InMemoryAuditRepository,
    clock: FakeClock,
) -> AppContainer:
    return wire_container(
        settings,
        session_repository=session_repository,
        tutor_repository=tutor_repository,
        audit_repository=audit_repository,
        clock=clock,
    )
