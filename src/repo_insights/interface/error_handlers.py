"""Global exception handlers — translate domain errors to HTTP responses.

Each domain exception maps to a specific HTTP status code and the
standard ``{"status": "error", "message": "..."}`` envelope.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from repo_insights.domain.exceptions import (
    AlreadyInComparisonError,
    ComparisonFullError,
    GenerationError,
    InvalidFormatError,
    NoCurrentRepositoryError,
    RateLimitedError,
    RepoInsightsError,
    RepositoryNotFoundError,
    RequestTimeoutError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

_EXCEPTION_STATUS: list[tuple[type[RepoInsightsError], int]] = [
    (InvalidFormatError, 422),
    (RepositoryNotFoundError, 404),
    (RateLimitedError, 429),
    (RequestTimeoutError, 504),
    (UpstreamError, 502),
    (GenerationError, 502),
    (NoCurrentRepositoryError, 409),
    (AlreadyInComparisonError, 409),
    (ComparisonFullError, 409),
]


def _error_json(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
    )


def status_for(exc: RepoInsightsError) -> int:
    """HTTP status code for a domain exception (500 when unmapped)."""
    for exc_type, code in _EXCEPTION_STATUS:
        if isinstance(exc, exc_type):
            return code
    return 500


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application."""

    # ── Domain exceptions ───────────────────────────────────────────────

    @app.exception_handler(RepoInsightsError)
    async def domain_handler(request: Request, exc: RepoInsightsError) -> JSONResponse:
        logger.warning("%s: %s", type(exc).__name__, exc)
        return _error_json(status_for(exc), str(exc))

    # ── Pydantic / FastAPI validation errors ────────────────────────────

    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = []
        for err in exc.errors():
            loc = " → ".join(str(p) for p in err.get("loc", []))
            messages.append(f"{loc}: {err.get('msg', 'validation error')}")
        return _error_json(422, "; ".join(messages))

    # ── Catch-all for unexpected errors ─────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception")
        return _error_json(500, "An unexpected error occurred. Please try again later.")
