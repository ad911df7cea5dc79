"""Tests for per-address submission admission control."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.services.complaints.admission import (
    AdmissionController,
    InMemoryWindowStore,
    RedisWindowStore,
    WindowHit,
    build_window_store,
)
from tests.fakes import FakeClock


# -----------------------------------------------------------------------
# InMemoryWindowStore
# -----------------------------------------------------------------------


class TestInMemoryWindowStore:
    async def test_counts_hits_per_key(self) -> None:
        store = InMemoryWindowStore(clock=FakeClock())
        assert (await store.hit("a", 900)).count == 1
        assert (await store.hit("a", 900)).count == 2
        assert (await store.hit("b", 900)).count == 1, "keys must be counted independently"

    async def test_window_resets_after_expiry(self) -> None:
        clock = FakeClock()
        store = InMemoryWindowStore(clock=clock)
        await store.hit("a", 900)
        await store.hit("a", 900)
        clock.advance(901)
        hit = await store.hit("a", 900)
        assert hit.count == 1, "count should restart once the window has elapsed"

    async def test_window_does_not_slide_with_hits(self) -> None:
        clock = FakeClock()
        store = InMemoryWindowStore(clock=clock)
        await store.hit("a", 900)
        clock.advance(600)
        hit = await store.hit("a", 900)
        assert hit.count == 2
        assert hit.resets_in_seconds == pytest.approx(300)

    async def test_stale_entries_are_swept(self) -> None:
        clock = FakeClock()
        store = InMemoryWindowStore(clock=clock, cleanup_interval=3)
        await store.hit("a", 10)
        await store.hit("b", 10)
        clock.advance(11)
        await store.hit("c", 10)
        assert store.size == 1, "expired addresses should be removed on cleanup"


# -----------------------------------------------------------------------
# AdmissionController
# -----------------------------------------------------------------------


class TestAdmissionController:
    async def test_sixth_attempt_in_window_is_denied(self) -> None:
        controller = AdmissionController(InMemoryWindowStore(clock=FakeClock()), limit=5, window_seconds=900)
        decisions = [await controller.admit("198.51.100.7") for _ in range(6)]
        assert all(d.allowed for d in decisions[:5])
        assert decisions[5].allowed is False
        assert decisions[5].retry_after_seconds > 0

    async def test_first_attempt_after_window_is_allowed(self) -> None:
        clock = FakeClock()
        controller = AdmissionController(InMemoryWindowStore(clock=clock), limit=5, window_seconds=900)
        for _ in range(6):
            await controller.admit("198.51.100.7")
        clock.advance(15 * 60 + 1)
        decision = await controller.admit("198.51.100.7")
        assert decision.allowed is True
        assert decision.count == 1

    async def test_denied_attempts_still_count(self) -> None:
        clock = FakeClock()
        controller = AdmissionController(InMemoryWindowStore(clock=clock), limit=2, window_seconds=60)
        for _ in range(4):
            await controller.admit("x")
        decision = await controller.admit("x")
        assert decision.count == 5

    async def test_addresses_are_independent(self) -> None:
        controller = AdmissionController(InMemoryWindowStore(clock=FakeClock()), limit=1, window_seconds=60)
        assert (await controller.admit("a")).allowed
        assert not (await controller.admit("a")).allowed
        assert (await controller.admit("b")).allowed

    async def test_concurrent_admissions_never_exceed_limit(self) -> None:
        controller = AdmissionController(InMemoryWindowStore(clock=FakeClock()), limit=5, window_seconds=900)
        decisions = await asyncio.gather(*(controller.admit("burst") for _ in range(20)))
        assert sum(d.allowed for d in decisions) == 5

    async def test_store_failure_falls_back_to_in_memory(self) -> None:
        broken = AsyncMock()
        broken.hit.side_effect = ConnectionError("redis down")
        controller = AdmissionController(broken, limit=1, window_seconds=60)
        assert (await controller.admit("a")).allowed
        assert not (await controller.admit("a")).allowed, "fallback store must still enforce the limit"

    async def test_retry_after_reflects_remaining_window(self) -> None:
        store = AsyncMock()
        store.hit.return_value = WindowHit(count=6, resets_in_seconds=42.3)
        controller = AdmissionController(store, limit=5, window_seconds=900)
        decision = await controller.admit("a")
        assert decision.retry_after_seconds == 43


# -----------------------------------------------------------------------
# Store selection
# -----------------------------------------------------------------------


class TestBuildWindowStore:
    def test_no_url_gives_in_memory(self) -> None:
        assert isinstance(build_window_store(None), InMemoryWindowStore)
        assert isinstance(build_window_store(""), InMemoryWindowStore)

    def test_url_gives_redis(self) -> None:
        # Connection pools connect lazily, so no server is needed here.
        assert isinstance(build_window_store("redis://localhost:6379/0"), RedisWindowStore)
