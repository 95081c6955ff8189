"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from supabase import create_client

from tutor_sessions.adapters.supabase_audit_repository import SupabaseAuditRepository
from tutor_sessions.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from tutor_sessions.adapters.supabase_tutor_repository import SupabaseTutorRepository
from tutor_sessions.config import Settings
from tutor_sessions.domain.sessions import utcnow
from tutor_sessions.services.audit import AuditRepository, AuditService
from tutor_sessions.services.booking import BookingService
from tutor_sessions.services.cache import InMemoryCache
from tutor_sessions.services.claims import ClaimCoordinator
from tutor_sessions.services.expiry import ExpiryService
from tutor_sessions.services.matching import MatchingService
from tutor_sessions.services.sessions import SessionQueryService, SessionRepository
from tutor_sessions.services.transitions import (
    SessionStatusService,
    StatusTransitionValidator,
)
from tutor_sessions.services.tutors import TutorDirectory, TutorRepository


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    tutor_directory: TutorDirectory
    booking_service: BookingService
    claim_coordinator: ClaimCoordinator
    status_service: SessionStatusService
    query_service: SessionQueryService
    matching_service: MatchingService
    expiry_service: ExpiryService
    audit_service: AuditService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    return wire_container(
        resolved_settings,
        session_repository=SupabaseSessionRepository(supabase_client),
        tutor_repository=SupabaseTutorRepository(supabase_client),
        audit_repository=SupabaseAuditRepository(supabase_client),
    )


def wire_container(
    settings: Settings,
    *,
    session_repository: SessionRepository,
    tutor_repository: TutorRepository,
    audit_repository: AuditRepository,
    clock: Callable[[], datetime] = utcnow,
) -> AppContainer:
    """Build services on top of the given repositories."""
    audit_service = AuditService(audit_repository)
    tutor_directory = TutorDirectory(
        repository=tutor_repository,
        cache=InMemoryCache(clock=clock),
        ttl_seconds=settings.tutor_cache_ttl_seconds,
    )
    validator = StatusTransitionValidator()
    status_service = SessionStatusService(
        repository=session_repository,
        audit_service=audit_service,
        validator=validator,
        clock=clock,
        max_attempts=settings.status_update_attempts,
    )
    booking_service = BookingService(
        repository=session_repository,
        directory=tutor_directory,
        audit_service=audit_service,
        clock=clock,
        max_duration_minutes=settings.max_duration_minutes,
    )
    claim_coordinator = ClaimCoordinator(
        repository=session_repository,
        audit_service=audit_service,
        validator=validator,
        clock=clock,
    )
    query_service = SessionQueryService(
        repository=session_repository,
        directory=tutor_directory,
        audit_service=audit_service,
        clock=clock,
    )
    expiry_service = ExpiryService(
        repository=session_repository,
        status_service=status_service,
        clock=clock,
        searching_timeout_minutes=settings.searching_timeout_minutes,
        payment_timeout_minutes=settings.payment_timeout_minutes,
    )

    async def close_resources() -> None:
        tutor_directory.refresh()

    return AppContainer(
        settings=settings,
        tutor_directory=tutor_directory,
        booking_service=booking_service,
        claim_coordinator=claim_coordinator,
        status_service=status_service,
        query_service=query_service,
        matching_service=MatchingService(tutor_directory),
        expiry_service=expiry_service,
        audit_service=audit_service,
        close_resources=close_resources,
    )
