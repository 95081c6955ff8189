"""Errors raised by the session coordination core."""

from uuid import UUID

from tutor_sessions.domain.sessions import SessionStatus


class SessionCoordinationError(Exception):
    """Base class for all session coordination errors."""


class InvalidRequest(SessionCoordinationError):
    """Raised when booking or update input is malformed."""


class NotFound(SessionCoordinationError):
    """Raised when a session id is unknown."""

    def __init__(self, session_id: UUID) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class Conflict(SessionCoordinationError):
    """Raised when a claim loses a race or the session is owned elsewhere."""

    def __init__(self, session_id: UUID, message: str) -> None:
        self.session_id = session_id
        super().__init__(message)


class InvalidTransition(SessionCoordinationError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(
        self,
        session_id: UUID,
        current_status: SessionStatus,
        requested_status: SessionStatus,
        message: str | None = None,
    ) -> None:
        self.session_id = session_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            message
            or (
                f"Cannot move session {session_id} "
                f"from {current_status} to {requested_status}"
            )
        )
