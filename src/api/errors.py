"""HTTP mapping for complaint-engine exceptions."""

from __future__ import annotations

from typing import Final

import structlog
from fastapi import Request
from fastapi.responses import ORJSONResponse

from src.services.complaints.errors import (
    AuditWriteError,
    ComplaintError,
    ConcurrentModificationError,
    DependencyUnavailableError,
    EvidenceRequiredError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    RateLimitedError,
    TriageRejectedError,
    UnauthenticatedError,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# Checked in order; subclasses must precede their bases.
_STATUS_CODES: Final[tuple[tuple[type[ComplaintError], int], ...]] = (
    (RateLimitedError, 429),
    (InvalidInputError, 400),
    (UnauthenticatedError, 401),
    (ForbiddenError, 403),
    (TriageRejectedError, 400),
    (EvidenceRequiredError, 400),
    (NotFoundError, 404),
    (DependencyUnavailableError, 503),
    (AuditWriteError, 500),
    (ConcurrentModificationError, 409),
)


def status_code_for(exc: ComplaintError) -> int:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def complaint_error_handler(request: Request, exc: ComplaintError) -> ORJSONResponse:
    """Render a :class:`ComplaintError` as ``{"detail": ...}`` with its status."""
    status_code = status_code_for(exc)
    content: dict[str, object] = {"detail": exc.message, "error": type(exc).__name__}
    headers: dict[str, str] = {}

    if isinstance(exc, TriageRejectedError):
        content["detail"] = f"{exc.message} Reason: {exc.reason}"
        content["reason"] = exc.reason
    elif isinstance(exc, RateLimitedError):
        content["retry_after_seconds"] = exc.retry_after_seconds
        headers["Retry-After"] = str(exc.retry_after_seconds)

    log = logger.error if status_code >= 500 else logger.info
    log("api.complaint_error", path=request.url.path, status=status_code, error=type(exc).__name__)

    return ORJSONResponse(status_code=status_code, content=content, headers=headers or None)


async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.error("api.unhandled_error", path=request.url.path, exc_info=exc)
    return ORJSONResponse(status_code=500, content={"detail": "Internal server error"})
