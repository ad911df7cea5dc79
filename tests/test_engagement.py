"""Tests for upvotes, resolution feedback and staff assignment."""

from __future__ import annotations

import asyncio

import pytest

from src.services.complaints.engagement import EngagementService
from src.services.complaints.errors import (
    DuplicateVoteError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)


@pytest.fixture
def engagement(repository) -> EngagementService:
    return EngagementService(repository)


class TestUpvote:
    async def test_counts_distinct_voters(self, engine, engagement) -> None:
        complaint = await engine.submit()
        assert await engagement.upvote(complaint.record_id, "voter-a") == 1
        assert await engagement.upvote(complaint.record_id, "voter-b") == 2

        stored = await engine.repository.get(complaint.record_id)
        assert stored.upvoted_by == ["voter-a", "voter-b"]

    async def test_second_vote_is_refused(self, engine, engagement) -> None:
        complaint = await engine.submit()
        await engagement.upvote(complaint.record_id, "voter-a")
        with pytest.raises(DuplicateVoteError):
            await engagement.upvote(complaint.record_id, "voter-a")
        stored = await engine.repository.get(complaint.record_id)
        assert stored.upvotes == 1

    async def test_concurrent_votes_from_one_voter_count_once(self, engine, engagement) -> None:
        complaint = await engine.submit()
        results = await asyncio.gather(
            *(engagement.upvote(complaint.record_id, "voter-a") for _ in range(4)),
            return_exceptions=True,
        )
        assert results.count(1) == 1
        assert sum(isinstance(r, DuplicateVoteError) for r in results) == 3

    async def test_upvote_does_not_touch_status_or_timeline(self, engine, engagement) -> None:
        complaint = await engine.submit()
        await engagement.upvote(complaint.record_id, "voter-a")
        stored = await engine.repository.get(complaint.record_id)
        assert stored.status == complaint.status
        assert len(await engine.repository.timeline(complaint.tracking_code)) == 1

    async def test_blank_voter_unauthenticated(self, engine, engagement) -> None:
        complaint = await engine.submit()
        with pytest.raises(UnauthenticatedError):
            await engagement.upvote(complaint.record_id, "")

    async def test_unknown_record(self, engagement) -> None:
        with pytest.raises(NotFoundError):
            await engagement.upvote("missing", "voter-a")


class TestFeedback:
    async def test_resolved_complaint_accepts_feedback(self, engine, engagement) -> None:
        complaint = await engine.submit()
        await engine.lifecycle.withdraw(complaint.record_id, complaint.tracking_code)

        stored = await engagement.submit_feedback(complaint.record_id, 4, "  Quick fix, thanks. ")
        assert stored.feedback_rating == 4
        assert stored.feedback_text == "Quick fix, thanks."

    async def test_unresolved_complaint_refuses_feedback(self, engine, engagement) -> None:
        complaint = await engine.submit()
        with pytest.raises(InvalidInputError, match="resolved"):
            await engagement.submit_feedback(complaint.record_id, 5)

    @pytest.mark.parametrize("rating", [0, 6, -1])
    async def test_rating_out_of_range(self, engine, engagement, rating: int) -> None:
        complaint = await engine.submit()
        with pytest.raises(InvalidInputError):
            await engagement.submit_feedback(complaint.record_id, rating)

    async def test_feedback_too_long(self, engine, engagement) -> None:
        complaint = await engine.submit()
        with pytest.raises(InvalidInputError):
            await engagement.submit_feedback(complaint.record_id, 3, "x" * 2001)


class TestAssign:
    async def test_set_and_clear(self, engine, engagement) -> None:
        complaint = await engine.submit()
        assert await engagement.assign(complaint.record_id, " officer-7 ") == "officer-7"
        assert await engagement.assign(complaint.record_id, None) is None
        stored = await engine.repository.get(complaint.record_id)
        assert stored.assigned_to is None
        assert stored.version == 2

    async def test_unknown_record(self, engagement) -> None:
        with pytest.raises(NotFoundError):
            await engagement.assign("missing", "officer-7")
