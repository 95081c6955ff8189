"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Query, Request, status

from tutor_sessions.api.admin import router as admin_router
from tutor_sessions.api.errors import register_error_handlers
from tutor_sessions.api.models import (
    CreateSessionBody,
    DocumentBody,
    DocumentResponse,
    PaymentBody,
    SessionResponse,
    StatusUpdateBody,
    TutorActionBody,
    TutorResponse,
    sessions_response,
)
from tutor_sessions.app_logging import configure_logging
from tutor_sessions.containers import AppContainer
from tutor_sessions.domain.sessions import SessionStatus
from tutor_sessions.domain.subjects import SUBJECT_CATEGORIES, all_subjects


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting in %s", app.state.container.settings.environment)
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    register_error_handlers(app)
    app.include_router(admin_router)

    def _container(request: Request) -> AppContainer:
        return request.app.state.container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/subjects")
    async def subjects() -> dict[str, object]:
        """Return the subject catalog grouped by category."""
        return {
            "categories": {
                label: list(tags) for label, tags in SUBJECT_CATEGORIES.items()
            },
            "subjects": all_subjects(),
        }

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    def create_session(body: CreateSessionBody, request: Request) -> SessionResponse:
        """Book an open, scheduled or direct session."""
        session = _container(request).booking_service.create_session(
            body.to_request()
        )
        return SessionResponse.from_domain(session)

    @app.get("/sessions/available")
    def available_sessions(
        request: Request,
        subject: str | None = None,
        tutor_id: str | None = Query(default=None, alias="tutorId"),
    ) -> list[SessionResponse]:
        """Return sessions a tutor could accept right now."""
        sessions = _container(request).query_service.list_available(
            tutor_id=tutor_id, subject=subject
        )
        return sessions_response(sessions)

    @app.get("/sessions/{session_id}")
    def get_session(session_id: UUID, request: Request) -> SessionResponse:
        session = _container(request).query_service.get_session(session_id)
        return SessionResponse.from_domain(session)

    @app.put("/sessions/{session_id}/accept")
    def accept_session(
        session_id: UUID, body: TutorActionBody, request: Request
    ) -> SessionResponse:
        """Claim a session for a tutor."""
        session = _container(request).claim_coordinator.try_claim(
            session_id, body.tutor_id
        )
        return SessionResponse.from_domain(session)

    @app.put("/sessions/{session_id}/decline")
    def decline_session(
        session_id: UUID, body: TutorActionBody, request: Request
    ) -> SessionResponse:
        session = _container(request).claim_coordinator.decline(
            session_id, body.tutor_id
        )
        return SessionResponse.from_domain(session)

    @app.put("/sessions/{session_id}/status")
    def update_status(
        session_id: UUID, body: StatusUpdateBody, request: Request
    ) -> SessionResponse:
        """Move a session through payment, start, end or cancellation."""
        session = _container(request).status_service.update_status(
            session_id, body.status, actor_id=body.actor_id, reason=body.reason
        )
        return SessionResponse.from_domain(session)

    @app.post("/sessions/{session_id}/payment")
    def record_payment(
        session_id: UUID, body: PaymentBody, request: Request
    ) -> SessionResponse:
        """Apply a payment gateway outcome."""
        session = _container(request).status_service.record_payment(
            session_id,
            succeeded=body.succeeded,
            transaction_id=body.transaction_id,
        )
        return SessionResponse.from_domain(session)

    @app.post("/sessions/{session_id}/documents", status_code=status.HTTP_201_CREATED)
    def add_document(
        session_id: UUID, body: DocumentBody, request: Request
    ) -> DocumentResponse:
        document = _container(request).query_service.add_document(
            session_id, body.name, body.url, body.uploaded_by
        )
        return DocumentResponse.from_domain(document)

    @app.get("/students/{student_id}/sessions")
    def student_sessions(
        student_id: str,
        request: Request,
        session_status: SessionStatus | None = Query(default=None, alias="status"),
    ) -> list[SessionResponse]:
        sessions = _container(request).query_service.list_student_sessions(
            student_id, session_status
        )
        return sessions_response(sessions)

    @app.get("/tutors/match")
    def match_tutors(topic: str, request: Request) -> list[TutorResponse]:
        """Return tutors who teach a subject compatible with ``topic``."""
        tutors = _container(request).matching_service.find_tutors(topic)
        return [TutorResponse.from_domain(tutor) for tutor in tutors]

    @app.get("/tutors/{tutor_id}/sessions")
    def tutor_sessions(
        tutor_id: str,
        request: Request,
        session_status: SessionStatus | None = Query(default=None, alias="status"),
    ) -> list[SessionResponse]:
        sessions = _container(request).query_service.list_tutor_sessions(
            tutor_id, session_status
        )
        return sessions_response(sessions)

    @app.get("/tutors/{tutor_id}/requests")
    def tutor_requests(tutor_id: str, request: Request) -> list[SessionResponse]:
        """Return direct booking requests waiting on this tutor."""
        sessions = _container(request).query_service.list_booking_requests(tutor_id)
        return sessions_response(sessions)

    return app
