"""Exceptions raised by the complaint lifecycle services.

The API layer maps each class to an HTTP status; services never build
HTTP responses themselves.
"""

from __future__ import annotations


class ComplaintError(Exception):
    """Base exception for complaint lifecycle operations."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or "")
        self.message = message or (self.__class__.__doc__ or "").strip()


class RateLimitedError(ComplaintError):
    """Too many submissions from this address. Please try again later."""

    def __init__(self, message: str = "", *, retry_after_seconds: int = 0) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class InvalidInputError(ComplaintError):
    """The request is missing required fields or carries invalid values."""


class UnauthenticatedError(ComplaintError):
    """Unauthorized. Please log in to continue."""


class ForbiddenError(ComplaintError):
    """The caller is not allowed to perform this action."""


class TriageRejectedError(ComplaintError):
    """Your submission was flagged by our automated systems."""

    def __init__(self, reason: str) -> None:
        super().__init__()
        self.reason = reason


class EvidenceRequiredError(ComplaintError):
    """Photographic proof of resolution is required to close a complaint."""


class NotFoundError(ComplaintError):
    """Complaint not found."""


class DependencyUnavailableError(ComplaintError):
    """A required external service is unavailable."""


class AuditWriteError(ComplaintError):
    """The status change could not be recorded. Please retry."""


class ConcurrentModificationError(ComplaintError):
    """The complaint was modified by another request. Please retry."""


class DuplicateVoteError(InvalidInputError):
    """You have already upvoted this issue."""
