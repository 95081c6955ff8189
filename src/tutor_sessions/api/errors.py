"""Mapping of session coordination errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tutor_sessions.domain.errors import (
    Conflict,
    InvalidRequest,
    InvalidTransition,
    NotFound,
)

_logger = logging.getLogger(__name__)


def _error_body(code: str, exc: Exception) -> dict[str, object]:
    return {"error": code, "detail": str(exc)}


def register_error_handlers(app: FastAPI) -> None:
    """Install JSON handlers for the domain error taxonomy."""

    @app.exception_handler(InvalidRequest)
    async def invalid_request_handler(
        request: Request, exc: InvalidRequest
    ) -> JSONResponse:
        return JSONResponse(
            _error_body("invalid_request", exc),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(
            _error_body("not_found", exc),
            status_code=status.HTTP_404_NOT_FOUND,
        )

    @app.exception_handler(Conflict)
    async def conflict_handler(request: Request, exc: Conflict) -> JSONResponse:
        _logger.info("Conflict on %s: %s", request.url.path, exc)
        return JSONResponse(
            _error_body("conflict", exc),
            status_code=status.HTTP_409_CONFLICT,
        )

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(
        request: Request, exc: InvalidTransition
    ) -> JSONResponse:
        body = _error_body("invalid_transition", exc)
        body["currentStatus"] = str(exc.current_status)
        body["requestedStatus"] = str(exc.requested_status)
        return JSONResponse(body, status_code=status.HTTP_409_CONFLICT)
