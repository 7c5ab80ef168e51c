"""Map domain errors to HTTP responses.

Routers catch DocsealError and re-raise ``to_http_exception(e) from None``.
Anything else is left to propagate as a 500.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from docseal.core.errors import (
    ConflictError,
    DeadlinePassedError,
    DocsealError,
    InvalidSecretKeyError,
    InvalidStateError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def to_http_exception(exc: DocsealError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, RateLimitedError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(exc),
            headers={"Retry-After": str(max(1, exc.remaining_seconds))},
        )
    if isinstance(exc, InvalidSecretKeyError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": str(exc), "remaining_attempts": exc.remaining_attempts},
        )
    if isinstance(exc, DeadlinePassedError):
        return HTTPException(status_code=status.HTTP_410_GONE, detail=str(exc))
    if isinstance(exc, (InvalidStateError, ConflictError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ValidationError):
        # Literal: the constant name differs across Starlette releases.
        return HTTPException(status_code=422, detail=str(exc))

    logger.error("Unmapped domain error %s: %s", type(exc).__name__, exc)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
