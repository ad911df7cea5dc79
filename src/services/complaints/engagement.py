"""Citizen and staff interactions that are not status changes.

Upvotes, resolution feedback and staff assignment mutate a complaint
without writing an audit entry.  Each runs under the record's lock.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.models.complaint import Complaint
from src.models.enums import ComplaintStatus
from src.services.complaints.errors import (
    DuplicateVoteError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)

if TYPE_CHECKING:
    from src.services.complaints.repository import ComplaintRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

MAX_FEEDBACK_LENGTH = 2000


class EngagementService:
    __slots__ = ("_repository",)

    def __init__(self, repository: ComplaintRepository) -> None:
        self._repository = repository

    async def _load(self, record_id: str) -> Complaint:
        complaint = await self._repository.get(record_id)
        if complaint is None:
            raise NotFoundError()
        return complaint

    async def upvote(self, record_id: str, voter_id: str) -> int:
        """Count one endorsement per voter and return the new total.

        Raises
        ------
        DuplicateVoteError
            *voter_id* has already upvoted this complaint.
        """
        if not voter_id:
            raise UnauthenticatedError("You must be logged in to upvote.")

        async with self._repository.record_lock(record_id):
            current = await self._load(record_id)
            if voter_id in current.upvoted_by:
                raise DuplicateVoteError()
            stored = await self._repository.save(
                current.model_copy(
                    update={
                        "upvotes": current.upvotes + 1,
                        "upvoted_by": [*current.upvoted_by, voter_id],
                    }
                ),
                expected_version=current.version,
            )

        logger.info("engagement.upvoted", record_id=record_id, upvotes=stored.upvotes)
        return stored.upvotes

    async def submit_feedback(
        self,
        record_id: str,
        rating: int,
        feedback_text: str | None = None,
    ) -> Complaint:
        """Record the citizen's 1-5 rating of a resolved complaint."""
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidInputError("Rating must be between 1 and 5")
        text = (feedback_text or "").strip()
        if len(text) > MAX_FEEDBACK_LENGTH:
            raise InvalidInputError(f"Feedback exceeds {MAX_FEEDBACK_LENGTH} characters")

        async with self._repository.record_lock(record_id):
            current = await self._load(record_id)
            if current.status != ComplaintStatus.RESOLVED:
                raise InvalidInputError("Feedback can only be given on resolved complaints")
            stored = await self._repository.save(
                current.model_copy(update={"feedback_rating": rating, "feedback_text": text}),
                expected_version=current.version,
            )

        logger.info("engagement.feedback", record_id=record_id, rating=rating)
        return stored

    async def assign(self, record_id: str, assigned_to: str | None) -> str | None:
        """Set or clear the staff member responsible for a complaint."""
        assignee = (assigned_to or "").strip() or None
        async with self._repository.record_lock(record_id):
            current = await self._load(record_id)
            stored = await self._repository.save(
                current.model_copy(update={"assigned_to": assignee}),
                expected_version=current.version,
            )

        logger.info("engagement.assigned", record_id=record_id, assigned_to=assignee)
        return stored.assigned_to
