"""Tests for the session status state machine."""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from uuid import UUID

import pytest

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
)
from tutor_sessions.services.audit import AuditService
from tutor_sessions.services.transitions import (
    ALLOWED_TRANSITIONS,
    SessionStatusService,
    StatusTransitionValidator,
)
from tests.conftest import (
    START,
    FakeClock,
    InMemoryAuditRepository,
    InMemorySessionRepository,
    make_session,
)


def _service(
    repository: InMemorySessionRepository, clock: FakeClock | None = None
) -> tuple[SessionStatusService, InMemoryAuditRepository]:
    audit_repository = InMemoryAuditRepository()
    service = SessionStatusService(
        repository=repository,
        audit_service=AuditService(audit_repository),
        clock=clock or FakeClock(),
    )
    return service, audit_repository


def test_terminal_statuses_have_no_outgoing_transitions() -> None:
    validator = StatusTransitionValidator()
    for target in SessionStatus:
        assert not validator.is_allowed(SessionStatus.COMPLETED, target)
        assert not validator.is_allowed(SessionStatus.CANCELLED, target)


def test_every_live_status_can_be_cancelled() -> None:
    for current, targets in ALLOWED_TRANSITIONS.items():
        if current in {SessionStatus.COMPLETED, SessionStatus.CANCELLED}:
            continue
        assert SessionStatus.CANCELLED in targets


def test_plan_rejects_skipping_payment() -> None:
    validator = StatusTransitionValidator()
    session = make_session(status=SessionStatus.PENDING_PAYMENT, tutor_id="t1")

    with pytest.raises(InvalidTransition) as excinfo:
        validator.plan(session, SessionStatus.IN_PROGRESS, now=START)

    assert excinfo.value.current_status == SessionStatus.PENDING_PAYMENT
    assert excinfo.value.requested_status == SessionStatus.IN_PROGRESS


def test_plan_accept_requires_tutor() -> None:
    validator = StatusTransitionValidator()
    with pytest.raises(InvalidRequest):
        validator.plan(make_session(), SessionStatus.PENDING_PAYMENT, now=START)


def test_plan_start_requires_successful_payment() -> None:
    validator = StatusTransitionValidator()
    session = make_session(
        status=SessionStatus.PAID_WAITING,
        tutor_id="t1",
        payment_status=PaymentStatus.PENDING,
    )
    with pytest.raises(InvalidTransition):
        validator.plan(session, SessionStatus.IN_PROGRESS, now=START)


def test_full_lifecycle_sets_timestamps(clock: FakeClock) -> None:
    repository = InMemorySessionRepository()
    session = repository.put(
        make_session(status=SessionStatus.PENDING_PAYMENT, tutor_id="t1")
    )
    service, audit_repository = _service(repository, clock)

    paid = service.record_payment(session.id, succeeded=True, transaction_id="tx-1")
    assert paid.status == SessionStatus.PAID_WAITING
    assert paid.payment_status == PaymentStatus.SUCCESS
    assert paid.payment_transaction_id == "tx-1"

    clock.advance(minutes=5)
    started = service.update_status(session.id, SessionStatus.IN_PROGRESS)
    assert started.actual_start_time == clock.now

    clock.advance(minutes=45)
    completed = service.update_status(session.id, SessionStatus.COMPLETED)
    assert completed.status == SessionStatus.COMPLETED
    assert completed.end_time == clock.now
    assert completed.version == session.version + 3
    assert [event["event_type"] for event in audit_repository.events] == [
        "status:paid_waiting",
        "status:in_progress",
        "status:completed",
    ]


def test_repeated_start_keeps_first_start_time(clock: FakeClock) -> None:
    repository = InMemorySessionRepository()
    session = repository.put(
        make_session(
            status=SessionStatus.PAID_WAITING,
            tutor_id="t1",
            payment_status=PaymentStatus.SUCCESS,
        )
    )
    service, _ = _service(repository, clock)

    first = service.update_status(session.id, SessionStatus.IN_PROGRESS)
    clock.advance(minutes=3)
    second = service.update_status(session.id, SessionStatus.IN_PROGRESS)

    assert second.actual_start_time == first.actual_start_time
    assert second.version == first.version


def test_terminal_sessions_are_immutable() -> None:
    repository = InMemorySessionRepository()
    session = repository.put(
        make_session(status=SessionStatus.COMPLETED, tutor_id="t1", version=5)
    )
    service, audit_repository = _service(repository)

    for target in (
        SessionStatus.IN_PROGRESS,
        SessionStatus.CANCELLED,
        SessionStatus.PAID_WAITING,
    ):
        with pytest.raises(InvalidTransition):
            service.update_status(session.id, target)

    assert repository.sessions[session.id] == session
    assert audit_repository.events == []


def test_accept_is_not_reachable_through_status_updates() -> None:
    repository = InMemorySessionRepository()
    session = repository.put(make_session())
    service, _ = _service(repository)

    with pytest.raises(InvalidTransition):
        service.update_status(session.id, SessionStatus.PENDING_PAYMENT)


def test_failed_payment_cancels_and_marks_payment_failed() -> None:
    repository = InMemorySessionRepository()
    session = repository.put(
        make_session(status=SessionStatus.PENDING_PAYMENT, tutor_id="t1")
    )
    service, _ = _service(repository)

    cancelled = service.record_payment(session.id, succeeded=False)

    assert cancelled.status == SessionStatus.CANCELLED
    assert cancelled.payment_status == PaymentStatus.FAILED
    assert cancelled.cancel_reason == CancelReason.PAYMENT_FAILED
    assert cancelled.end_time is not None


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": SessionStatus.SEARCHING},
        {
            "status": SessionStatus.PAID_WAITING,
            "tutor_id": "t1",
            "payment_status": PaymentStatus.SUCCESS,
        },
        {
            "status": SessionStatus.IN_PROGRESS,
            "tutor_id": "t1",
            "payment_status": PaymentStatus.SUCCESS,
            "actual_start_time": START,
        },
    ],
)
def test_payment_failure_only_cancels_sessions_awaiting_payment(
    overrides: dict[str, object],
) -> None:
    repository = InMemorySessionRepository()
    session = repository.put(make_session(**overrides))
    service, audit_repository = _service(repository)

    with pytest.raises(InvalidTransition) as excinfo:
        service.record_payment(session.id, succeeded=False)

    assert excinfo.value.current_status == session.status
    assert excinfo.value.requested_status == SessionStatus.CANCELLED
    assert repository.sessions[session.id] == session
    assert repository.update_calls == 0
    assert audit_repository.events == []


def test_payment_failure_reason_rejected_on_status_update() -> None:
    repository = InMemorySessionRepository()
    session = repository.put(make_session())
    service, _ = _service(repository)

    with pytest.raises(InvalidTransition):
        service.update_status(
            session.id, SessionStatus.CANCELLED, reason=CancelReason.PAYMENT_FAILED
        )

    assert repository.sessions[session.id].status == SessionStatus.SEARCHING


def test_cancel_defaults_to_user_reason() -> None:
    repository = InMemorySessionRepository()
    session = repository.put(make_session())
    service, _ = _service(repository)

    cancelled = service.cancel(session.id, actor_id="student-1")

    assert cancelled.cancel_reason == CancelReason.CANCELLED_BY_USER


def test_cancel_with_stale_version_conflicts() -> None:
    repository = InMemorySessionRepository()
    session = repository.put(make_session(version=3))
    service, _ = _service(repository)

    with pytest.raises(Conflict):
        service.cancel(session.id, expected_version=2)

    assert repository.sessions[session.id].status == SessionStatus.SEARCHING


def test_unknown_session_raises_not_found() -> None:
    service, _ = _service(InMemorySessionRepository())
    with pytest.raises(NotFound):
        service.update_status(make_session().id, SessionStatus.CANCELLED)


class RacingSessionRepository(InMemorySessionRepository):
    """Bumps the stored version before every conditional write."""

    def conditional_update(
        self, session_id: UUID, expected_version: int, changes: dict[str, object]
    ) -> Session | None:
        current = self.sessions[session_id]
        self.sessions[session_id] = replace(current, version=current.version + 1)
        return super().conditional_update(session_id, expected_version, changes)


def test_status_update_gives_up_after_bounded_retries() -> None:
    repository = RacingSessionRepository()
    session = repository.put(make_session())
    service, audit_repository = _service(repository)

    with pytest.raises(Conflict):
        service.cancel(session.id)

    assert repository.update_calls == service.max_attempts
    assert audit_repository.events == []


class BarrierSessionRepository(InMemorySessionRepository):
    """Holds the first read of every caller until all of them have read."""

    barrier: threading.Barrier | None = None
    _thread_state = threading.local()

    def get_session(self, session_id: UUID) -> Session | None:
        session = super().get_session(session_id)
        first_read = not getattr(self._thread_state, "has_read", False)
        self._thread_state.has_read = True
        if self.barrier is not None and first_read:
            self.barrier.wait(timeout=5)
        return session


def test_concurrent_start_signals_write_one_start_time() -> None:
    caller_count = 5
    repository = BarrierSessionRepository()
    session = repository.put(
        make_session(
            status=SessionStatus.PAID_WAITING,
            tutor_id="t1",
            payment_status=PaymentStatus.SUCCESS,
        )
    )
    clock = FakeClock()
    service, audit_repository = _service(repository, clock)
    repository.barrier = threading.Barrier(caller_count)

    def start(_index: int) -> Session:
        return service.update_status(session.id, SessionStatus.IN_PROGRESS)

    with ThreadPoolExecutor(max_workers=caller_count) as pool:
        results = list(pool.map(start, range(caller_count)))
    repository.barrier = None

    assert all(result.status == SessionStatus.IN_PROGRESS for result in results)
    assert {result.actual_start_time for result in results} == {clock.now}
    stored = repository.sessions[session.id]
    assert stored.version == session.version + 1
    assert [event["event_type"] for event in audit_repository.events] == [
        "status:in_progress"
    ]


@dataclass
class FailingAuditRepository(InMemoryAuditRepository):
    """Audit store whose inserts always fail."""

    def create_event(  # noqa: PLR0913
        self,
        session_id: UUID,
        event_type: str,
        actor_id: str | None,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        raise RuntimeError("audit store unavailable")


def test_audit_failure_does_not_fail_committed_transition() -> None:
    repository = InMemorySessionRepository()
    session = repository.put(
        make_session(
            status=SessionStatus.IN_PROGRESS,
            tutor_id="t1",
            payment_status=PaymentStatus.SUCCESS,
            actual_start_time=START,
        )
    )
    service = SessionStatusService(
        repository=repository,
        audit_service=AuditService(FailingAuditRepository()),
        clock=FakeClock(),
    )

    completed = service.update_status(session.id, SessionStatus.COMPLETED)

    assert completed.status == SessionStatus.COMPLETED
    assert repository.sessions[session.id] == completed
