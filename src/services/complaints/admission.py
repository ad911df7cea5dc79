"""Submission admission control keyed by source address.

A fixed window of ``window_seconds`` opens on the first submission from an
address; each call counts against it, and once the count passes ``limit``
the address is denied until the window lapses.

Counters live behind a :class:`WindowCounterStore`.  The in-process store
only sees the traffic of its own instance, so a fleet of N instances lets
up to N times the limit through.  Deployments running more than one
instance should point ``REDIS_URL`` at a shared Redis so every instance
increments the same atomic counter.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

import structlog

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 15 * 60
DEFAULT_LIMIT = 5


@dataclass(slots=True, frozen=True)
class WindowHit:
    """Counter state after recording one hit."""

    count: int
    resets_in_seconds: float


@dataclass(slots=True, frozen=True)
class AdmissionDecision:
    allowed: bool
    count: int
    limit: int
    retry_after_seconds: int = 0


# ---------------------------------------------------------------------------
# Counter store protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class WindowCounterStore(Protocol):
    """Atomic per-key counter with a fixed expiry window."""

    async def hit(self, key: str, window_seconds: float) -> WindowHit: ...


# ---------------------------------------------------------------------------
# In-process store
# ---------------------------------------------------------------------------


class _Window:
    __slots__ = ("count", "started_at")

    def __init__(self, started_at: float) -> None:
        self.count = 0
        self.started_at = started_at


class InMemoryWindowStore:
    """Dict-backed window counters guarded by an :class:`asyncio.Lock`.

    Stale addresses are swept every ``cleanup_interval`` hits so one-time
    visitors do not grow the map without bound.
    """

    __slots__ = ("_clock", "_cleanup_counter", "_cleanup_interval", "_lock", "_windows")

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        cleanup_interval: int = 1000,
    ) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._cleanup_counter = 0
        self._cleanup_interval = cleanup_interval

    async def hit(self, key: str, window_seconds: float) -> WindowHit:
        now = self._clock()
        async with self._lock:
            self._cleanup_counter += 1
            if self._cleanup_counter >= self._cleanup_interval:
                self._cleanup_counter = 0
                self._cleanup_stale_entries(now, window_seconds)

            window = self._windows.get(key)
            if window is None:
                window = _Window(now)
                self._windows[key] = window
            elif now - window.started_at > window_seconds:
                window.count = 0
                window.started_at = now

            window.count += 1
            resets_in = window_seconds - (now - window.started_at)
            return WindowHit(count=window.count, resets_in_seconds=max(0.0, resets_in))

    def _cleanup_stale_entries(self, now: float, window_seconds: float) -> None:
        stale = [k for k, w in self._windows.items() if now - w.started_at > window_seconds]
        for key in stale:
            del self._windows[key]
        if stale:
            logger.debug("admission.cleanup", removed_keys=len(stale))

    @property
    def size(self) -> int:
        return len(self._windows)


# ---------------------------------------------------------------------------
# Redis store
# ---------------------------------------------------------------------------


class RedisWindowStore:
    """Shared window counters using Redis ``INCR`` + ``PEXPIRE``.

    The first increment of a key arms its expiry, so the key disappears
    (and the count restarts) exactly one window after the first hit.
    """

    __slots__ = ("_namespace", "_pool", "_redis")

    def __init__(self, url: str, *, namespace: str = "civicshakti:admission:", max_connections: int = 20) -> None:
        import redis.asyncio as aioredis

        self._namespace = namespace
        self._pool = aioredis.ConnectionPool.from_url(url, max_connections=max_connections)
        self._redis = aioredis.Redis(connection_pool=self._pool)

    async def hit(self, key: str, window_seconds: float) -> WindowHit:
        full_key = f"{self._namespace}{key}"
        window_ms = int(window_seconds * 1000)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(full_key)
            pipe.pttl(full_key)
            count, ttl_ms = await pipe.execute()

        # A missing expiry means this call created the key (or a previous
        # PEXPIRE was lost); arm it now.
        if ttl_ms is None or ttl_ms < 0:
            await self._redis.pexpire(full_key, window_ms)
            ttl_ms = window_ms

        return WindowHit(count=int(count), resets_in_seconds=ttl_ms / 1000)

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except Exception:
            return False

    async def close(self) -> None:
        await self._redis.aclose()
        await self._pool.aclose()


# ---------------------------------------------------------------------------
# Admission controller
# ---------------------------------------------------------------------------


class AdmissionController:
    """Per-source-address submission limiter.

    Parameters
    ----------
    store:
        Backing counter store.  When it raises (e.g. Redis went away) the
        controller degrades to a private in-process store rather than
        blocking submissions.
    limit:
        Admissions allowed per address per window.
    window_seconds:
        Window length.
    """

    __slots__ = ("_fallback", "_limit", "_store", "_window_seconds")

    def __init__(
        self,
        store: WindowCounterStore | None = None,
        *,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
    ) -> None:
        self._fallback = InMemoryWindowStore()
        self._store: WindowCounterStore = store if store is not None else self._fallback
        self._limit = limit
        self._window_seconds = window_seconds

    @property
    def limit(self) -> int:
        return self._limit

    async def admit(self, source_address: str) -> AdmissionDecision:
        key = source_address or "unknown"
        try:
            hit = await self._store.hit(key, self._window_seconds)
        except Exception:
            logger.warning("admission.store_failed_using_inmemory", exc_info=True)
            hit = await self._fallback.hit(key, self._window_seconds)

        if hit.count > self._limit:
            retry_after = max(1, math.ceil(hit.resets_in_seconds))
            logger.warning(
                "admission.denied",
                source_address=key,
                count=hit.count,
                limit=self._limit,
                retry_after_seconds=retry_after,
            )
            return AdmissionDecision(
                allowed=False,
                count=hit.count,
                limit=self._limit,
                retry_after_seconds=retry_after,
            )

        return AdmissionDecision(allowed=True, count=hit.count, limit=self._limit)


def build_window_store(redis_url: str | None) -> WindowCounterStore:
    """Return a Redis store when *redis_url* is set, else an in-process one."""
    if redis_url:
        try:
            return RedisWindowStore(redis_url)
        except Exception:
            logger.warning("admission.redis_init_failed", redis_url=redis_url)
    return InMemoryWindowStore()
