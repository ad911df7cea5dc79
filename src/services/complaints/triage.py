"""Automated triage of incoming complaints.

The content evaluator (Gemini in production) is an external dependency,
and triage never blocks a submission because that dependency is missing
or failing.  Every verdict is tagged with how it was reached:

* ``evaluated``        -- the evaluator answered.
* ``skipped_default``  -- no evaluator configured; neutral defaults used.
* ``errored_default``  -- the evaluator failed or timed out; neutral
  defaults used and the analysis text records the error.

A verdict is accepted iff ``is_valid`` and ``image_matches`` are both true.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from typing import Final, Protocol

import structlog

from src.models.enums import ComplaintCategory

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

NEUTRAL_PRIORITY: Final[int] = 50
DEFAULT_TIMEOUT_SECONDS: Final[float] = 15.0

SKIPPED_ANALYSIS: Final[str] = "AI validation skipped. Automatic default values applied."
ERRORED_ANALYSIS: Final[str] = "Error connecting to AI verification pipeline ({reason}). Auto-approved."


@dataclass(slots=True)
class ContentAnalysis:
    """Raw judgement returned by a content evaluator."""

    is_valid: bool
    priority_score: int
    analysis: str
    image_matches_description: bool


@dataclass(slots=True)
class CategorySuggestion:
    category: str
    confidence: float
    reasoning: str = ""


class ContentEvaluator(Protocol):
    async def analyze_complaint(
        self,
        category: str,
        description: str,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> ContentAnalysis: ...

    async def suggest_category(
        self,
        description: str | None,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> CategorySuggestion: ...


class TriageOutcome(StrEnum):
    __slots__ = ()

    EVALUATED = "evaluated"
    SKIPPED_DEFAULT = "skipped_default"
    ERRORED_DEFAULT = "errored_default"


@dataclass(slots=True, frozen=True)
class TriageVerdict:
    outcome: TriageOutcome
    is_valid: bool
    priority_score: int
    analysis: str
    image_matches: bool

    @property
    def accepted(self) -> bool:
        return self.is_valid and self.image_matches

    @classmethod
    def skipped(cls) -> TriageVerdict:
        return cls(
            outcome=TriageOutcome.SKIPPED_DEFAULT,
            is_valid=True,
            priority_score=NEUTRAL_PRIORITY,
            analysis=SKIPPED_ANALYSIS,
            image_matches=True,
        )

    @classmethod
    def errored(cls, reason: str) -> TriageVerdict:
        return cls(
            outcome=TriageOutcome.ERRORED_DEFAULT,
            is_valid=True,
            priority_score=NEUTRAL_PRIORITY,
            analysis=ERRORED_ANALYSIS.format(reason=reason),
            image_matches=True,
        )


class TriageEvaluator:
    """Fail-open decision step wrapped around a :class:`ContentEvaluator`.

    Parameters
    ----------
    evaluator:
        The content evaluator, or *None* when triage is not configured.
    timeout_seconds:
        Upper bound on one evaluator call, retries included.
    """

    __slots__ = ("_evaluator", "_timeout")

    def __init__(
        self,
        evaluator: ContentEvaluator | None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._evaluator = evaluator
        self._timeout = timeout_seconds

    @property
    def configured(self) -> bool:
        return self._evaluator is not None

    async def evaluate(
        self,
        category: str,
        description: str,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> TriageVerdict:
        """Return a verdict for one complaint; never raises."""
        if self._evaluator is None:
            logger.warning("triage.skipped_unconfigured", category=category)
            return TriageVerdict.skipped()

        has_image = bool(image_bytes and mime_type)
        try:
            analysis = await asyncio.wait_for(
                self._evaluator.analyze_complaint(
                    category,
                    description,
                    image_bytes if has_image else None,
                    mime_type if has_image else None,
                ),
                timeout=self._timeout,
            )
        except TimeoutError:
            logger.warning("triage.timeout", category=category, timeout_seconds=self._timeout)
            return TriageVerdict.errored("timeout")
        except Exception as exc:
            logger.exception("triage.evaluator_failed", category=category)
            return TriageVerdict.errored(type(exc).__name__)

        return TriageVerdict(
            outcome=TriageOutcome.EVALUATED,
            is_valid=analysis.is_valid,
            priority_score=max(0, min(100, analysis.priority_score)),
            analysis=analysis.analysis,
            # No photo means nothing to contradict the description.
            image_matches=analysis.image_matches_description if has_image else True,
        )

    async def suggest_category(
        self,
        description: str | None,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> CategorySuggestion:
        """Suggest a category, falling back to ``other`` on any failure."""
        fallback = CategorySuggestion(category=ComplaintCategory.OTHER.value, confidence=0.0)
        if self._evaluator is None:
            fallback.reasoning = "AI categorization unavailable."
            return fallback

        try:
            return await asyncio.wait_for(
                self._evaluator.suggest_category(description, image_bytes, mime_type),
                timeout=self._timeout,
            )
        except TimeoutError:
            logger.warning("triage.suggest_category.timeout")
        except Exception:
            logger.exception("triage.suggest_category.failed")
        fallback.reasoning = "AI categorization failed."
        return fallback
