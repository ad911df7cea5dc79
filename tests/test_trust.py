"""Tests for reporter trust score adjustment."""

from __future__ import annotations

import asyncio

import pytest

from src.models.complaint import ReporterProfile
from src.models.enums import TrustOutcome
from src.services.complaints.repository import InMemoryComplaintRepository
from src.services.complaints.trust import TrustScoreAdjuster, clamp_score


class TestClamp:
    @pytest.mark.parametrize(("raw", "expected"), [(-5, 0), (0, 0), (55, 55), (100, 100), (130, 100)])
    def test_bounds(self, raw: int, expected: int) -> None:
        assert clamp_score(raw) == expected


class TestAdjust:
    async def test_new_reporter_starts_at_fifty(self, repository) -> None:
        adjuster = TrustScoreAdjuster(repository)
        assert await adjuster.adjust("user-1", TrustOutcome.RESOLVED) == 55

    @pytest.mark.parametrize(("resolved", "rejected"), [(3, 0), (0, 2), (4, 1), (2, 3)])
    async def test_sequence_matches_formula(self, repository, resolved: int, rejected: int) -> None:
        adjuster = TrustScoreAdjuster(repository)
        score = None
        for _ in range(resolved):
            score = await adjuster.adjust("user-1", TrustOutcome.RESOLVED)
        for _ in range(rejected):
            score = await adjuster.adjust("user-1", TrustOutcome.REJECTED)
        assert score == clamp_score(50 + 5 * resolved - 10 * rejected)

    async def test_clamped_at_zero(self, repository) -> None:
        adjuster = TrustScoreAdjuster(repository)
        for _ in range(8):
            score = await adjuster.adjust("user-1", TrustOutcome.REJECTED)
        assert score == 0

    async def test_clamped_at_hundred(self, repository) -> None:
        await repository.save_profile(ReporterProfile(reporter_id="user-1", trust_score=98))
        adjuster = TrustScoreAdjuster(repository)
        assert await adjuster.adjust("user-1", TrustOutcome.RESOLVED) == 100

    @pytest.mark.parametrize("reporter", ["", "anonymous"])
    async def test_anonymous_has_no_profile(self, repository, reporter: str) -> None:
        adjuster = TrustScoreAdjuster(repository)
        assert await adjuster.adjust(reporter, TrustOutcome.RESOLVED) is None
        assert await repository.get_profile(reporter) is None

    async def test_concurrent_adjustments_are_not_lost(self, repository) -> None:
        adjuster = TrustScoreAdjuster(repository)
        await asyncio.gather(*(adjuster.adjust("user-1", TrustOutcome.RESOLVED) for _ in range(6)))
        profile = await repository.get_profile("user-1")
        assert profile.trust_score == 80, "every concurrent +5 must land"


class _BrokenProfiles(InMemoryComplaintRepository):
    __slots__ = ()

    async def save_profile(self, profile: ReporterProfile) -> None:
        raise OSError("profile store offline")


class TestSchedule:
    async def test_scheduled_adjustment_completes(self, repository) -> None:
        adjuster = TrustScoreAdjuster(repository)
        adjuster.schedule("user-1", TrustOutcome.REJECTED)
        assert adjuster.pending == 1
        await adjuster.drain()
        assert adjuster.pending == 0
        profile = await repository.get_profile("user-1")
        assert profile.trust_score == 40

    async def test_failure_is_contained(self) -> None:
        adjuster = TrustScoreAdjuster(_BrokenProfiles())
        task = adjuster.schedule("user-1", TrustOutcome.RESOLVED)
        await adjuster.drain()
        assert task.done()
        assert isinstance(task.exception(), OSError)
        assert adjuster.pending == 0

    async def test_drain_with_nothing_pending(self, repository) -> None:
        await TrustScoreAdjuster(repository).drain()
