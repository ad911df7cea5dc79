"""Reporter trust score adjustment.

Adjustments run as detached tasks scheduled after a status transition has
committed.  A failed adjustment is logged from the task's done-callback
and never reaches the request that triggered it.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from functools import partial
from typing import Final

import structlog

from src.models.complaint import DEFAULT_TRUST_SCORE, ReporterProfile
from src.models.enums import ANONYMOUS_REPORTER, TrustOutcome
from src.services.complaints.repository import ComplaintRepository, KeyedLocks

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

TRUST_DELTAS: Final[dict[TrustOutcome, int]] = {
    TrustOutcome.RESOLVED: 5,
    TrustOutcome.REJECTED: -10,
}

MIN_TRUST: Final[int] = 0
MAX_TRUST: Final[int] = 100


def clamp_score(value: int) -> int:
    return max(MIN_TRUST, min(MAX_TRUST, value))


class TrustScoreAdjuster:
    """Read-modify-write of reporter trust scores, serialised per reporter."""

    __slots__ = ("_locks", "_pending", "_repository")

    def __init__(self, repository: ComplaintRepository) -> None:
        self._repository = repository
        self._locks = KeyedLocks()
        self._pending: set[asyncio.Task[int | None]] = set()

    async def adjust(self, reporter_id: str, outcome: TrustOutcome) -> int | None:
        """Apply the delta for *outcome* and return the new score.

        Returns *None* for anonymous or blank reporters, which never get a
        profile.
        """
        if not reporter_id or reporter_id == ANONYMOUS_REPORTER:
            return None

        delta = TRUST_DELTAS[TrustOutcome(outcome)]
        async with self._locks(reporter_id):
            profile = await self._repository.get_profile(reporter_id)
            if profile is None:
                profile = ReporterProfile(reporter_id=reporter_id, trust_score=DEFAULT_TRUST_SCORE)
            previous = profile.trust_score
            profile.trust_score = clamp_score(previous + delta)
            profile.updated_at = datetime.now(UTC)
            await self._repository.save_profile(profile)

        logger.info(
            "trust.adjusted",
            reporter_id=reporter_id,
            outcome=str(outcome),
            previous=previous,
            score=profile.trust_score,
        )
        return profile.trust_score

    def schedule(self, reporter_id: str, outcome: TrustOutcome) -> asyncio.Task[int | None]:
        """Run :meth:`adjust` in the background; failures are only logged."""
        task = asyncio.create_task(self.adjust(reporter_id, outcome))
        self._pending.add(task)
        task.add_done_callback(partial(self._on_done, reporter_id, outcome))
        return task

    def _on_done(
        self,
        reporter_id: str,
        outcome: TrustOutcome,
        task: asyncio.Task[int | None],
    ) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("trust.adjust.cancelled", reporter_id=reporter_id, outcome=str(outcome))
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "trust.adjust.failed",
                reporter_id=reporter_id,
                outcome=str(outcome),
                exc_info=exc,
            )

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled adjustment to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
