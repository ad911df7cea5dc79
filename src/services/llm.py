"""Vertex AI Gemini client for complaint content evaluation.

Wraps the ``vertexai`` SDK to judge whether a citizen complaint is
legitimate, how urgent it is, and whether an attached photo matches the
stated category and description.  Also suggests a category from free text
or a photo.  Both calls request structured JSON output; a response that
cannot be parsed raises :class:`MalformedResponseError` so the caller can
record the failure.
"""

from __future__ import annotations

import json
import time
from typing import Any, Final

import structlog
import vertexai
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from vertexai.generative_models import (
    Content,
    GenerationConfig,
    GenerativeModel,
    Part,
)

from src.models.enums import ComplaintCategory
from src.services.complaints.triage import CategorySuggestion, ContentAnalysis

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

TRIAGE_SYSTEM_PROMPT: Final[str] = """\
You are a government triage assistant for the CivicShakti platform. \
Citizens report infrastructure problems (potholes, garbage, water supply, \
electricity, pollution, damaged public infrastructure). You judge each \
report quickly and neutrally. You never invent details that are not in \
the report or the photo.\
"""

_ANALYSIS_PROMPT: Final[str] = """\
Analyze the incoming citizen complaint.
Category: {category}
Description: {description}

Rules:
1. Reject (is_valid: false) if the text contains hate speech, extreme \
profanity, political campaigning, or clear spam.
2. Assign a priority_score (1-100) based on urgency. (e.g., Live wires = \
90-100, Pothole = 50-70, Garbage = 30-50).
3. If an image is provided, verify it visually matches the description. \
If it's a selfie, a meme, or completely unrelated to the category, set \
image_matches_description to false. If no image is provided, set \
image_matches_description to true.
4. analysis is a very brief, one-sentence reasoning for the score and validity.\
"""

_CATEGORY_PROMPT: Final[str] = """\
Pick the single best category for this civic issue report.
Valid categories: {categories}.
Use "other" when none fits.

Description: {description}

Return a JSON object with "category", "confidence" (0-1) and a one-sentence "reasoning".\
"""

_ANALYSIS_SCHEMA: Final[dict[str, Any]] = {
    "type": "OBJECT",
    "properties": {
        "is_valid": {"type": "BOOLEAN"},
        "priority_score": {"type": "INTEGER"},
        "analysis": {"type": "STRING"},
        "image_matches_description": {"type": "BOOLEAN"},
    },
    "required": ["is_valid", "priority_score", "analysis", "image_matches_description"],
}

_CATEGORY_SCHEMA: Final[dict[str, Any]] = {
    "type": "OBJECT",
    "properties": {
        "category": {"type": "STRING"},
        "confidence": {"type": "NUMBER"},
        "reasoning": {"type": "STRING"},
    },
    "required": ["category", "confidence"],
}


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


class MalformedResponseError(ValueError):
    """The model returned something that is not the requested JSON shape."""


def parse_content_analysis(raw_text: str) -> ContentAnalysis:
    """Parse and normalise the model's analysis JSON.

    Raises
    ------
    MalformedResponseError
        If the text is not a JSON object with the required keys.
    """
    try:
        parsed = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise MalformedResponseError(f"analysis is not JSON: {raw_text[:200]!r}") from exc

    if not isinstance(parsed, dict):
        raise MalformedResponseError("analysis is not a JSON object")

    missing = [k for k in _ANALYSIS_SCHEMA["required"] if k not in parsed]
    if missing:
        raise MalformedResponseError(f"analysis missing keys: {missing}")

    try:
        score = int(parsed["priority_score"])
    except (TypeError, ValueError) as exc:
        raise MalformedResponseError("priority_score is not an integer") from exc

    return ContentAnalysis(
        is_valid=bool(parsed["is_valid"]),
        priority_score=max(0, min(100, score)),
        analysis=str(parsed["analysis"]).strip(),
        image_matches_description=bool(parsed["image_matches_description"]),
    )


def parse_category_suggestion(raw_text: str) -> CategorySuggestion:
    """Parse the model's category JSON, mapping unknown values to ``other``."""
    try:
        parsed = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise MalformedResponseError(f"category is not JSON: {raw_text[:200]!r}") from exc
    if not isinstance(parsed, dict):
        raise MalformedResponseError("category is not a JSON object")

    raw_category = str(parsed.get("category", "")).strip().lower()
    try:
        category = ComplaintCategory(raw_category)
    except ValueError:
        logger.warning("llm.category_unknown", raw_category=raw_category)
        category = ComplaintCategory.OTHER

    try:
        confidence = float(parsed.get("confidence", 0.0))
    except (TypeError, ValueError):
        confidence = 0.0

    return CategorySuggestion(
        category=category.value,
        confidence=max(0.0, min(1.0, confidence)),
        reasoning=str(parsed.get("reasoning", "")).strip(),
    )


# ---------------------------------------------------------------------------
# GeminiTriageClient
# ---------------------------------------------------------------------------


class GeminiTriageClient:
    """Async interface to Vertex AI Gemini for complaint triage.

    Provides two operations:

    * **analyze_complaint** -- legitimacy, priority and photo coherence
    * **suggest_category** -- best-fit category for a draft report
    """

    def __init__(
        self,
        project_id: str,
        region: str = "asia-south1",
        model_name: str = "gemini-2.0-flash",
    ) -> None:
        self._project_id = project_id
        self._region = region
        self._model_name = model_name
        self._model: GenerativeModel | None = None
        self._initialized = False

    # -- lifecycle ----------------------------------------------------------

    def _initialize(self) -> None:
        """Lazily initialize the Vertex AI SDK and model handle."""
        if self._initialized:
            return
        vertexai.init(project=self._project_id, location=self._region)
        self._model = GenerativeModel(
            model_name=self._model_name,
            system_instruction=[Part.from_text(TRIAGE_SYSTEM_PROMPT)],
        )
        self._initialized = True
        logger.info(
            "llm_initialized",
            project=self._project_id,
            region=self._region,
            model=self._model_name,
        )

    def _get_model(self) -> GenerativeModel:
        self._initialize()
        assert self._model is not None  # noqa: S101
        return self._model

    @staticmethod
    def _build_parts(prompt: str, image_bytes: bytes | None, mime_type: str | None) -> list[Part]:
        parts = [Part.from_text(prompt)]
        if image_bytes and mime_type:
            parts.append(Part.from_data(data=image_bytes, mime_type=mime_type))
        return parts

    # -- public API ---------------------------------------------------------

    @retry(
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        reraise=True,
    )
    async def analyze_complaint(
        self,
        category: str,
        description: str,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> ContentAnalysis:
        """Judge a complaint's legitimacy, urgency and photo coherence."""
        start = time.perf_counter()
        model = self._get_model()

        prompt = _ANALYSIS_PROMPT.format(category=category, description=description)
        generation_config = GenerationConfig(
            temperature=0.1,
            top_p=0.8,
            max_output_tokens=256,
            response_mime_type="application/json",
            response_schema=_ANALYSIS_SCHEMA,
        )

        response = await model.generate_content_async(
            contents=[Content(role="user", parts=self._build_parts(prompt, image_bytes, mime_type))],
            generation_config=generation_config,
        )

        elapsed_ms = (time.perf_counter() - start) * 1000
        result = parse_content_analysis((response.text or "").strip())

        logger.info(
            "llm_analyze_complaint",
            category=category,
            has_image=image_bytes is not None,
            is_valid=result.is_valid,
            priority_score=result.priority_score,
            image_matches=result.image_matches_description,
            processing_time_ms=round(elapsed_ms, 2),
        )
        return result

    @retry(
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        reraise=True,
    )
    async def suggest_category(
        self,
        description: str | None,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> CategorySuggestion:
        """Suggest a :class:`ComplaintCategory` for a draft report."""
        start = time.perf_counter()
        model = self._get_model()

        prompt = _CATEGORY_PROMPT.format(
            categories=", ".join(c.value for c in ComplaintCategory),
            description=description or "(no description, see photo)",
        )
        generation_config = GenerationConfig(
            temperature=0.1,
            top_p=0.8,
            max_output_tokens=128,
            response_mime_type="application/json",
            response_schema=_CATEGORY_SCHEMA,
        )

        response = await model.generate_content_async(
            contents=[Content(role="user", parts=self._build_parts(prompt, image_bytes, mime_type))],
            generation_config=generation_config,
        )

        elapsed_ms = (time.perf_counter() - start) * 1000
        suggestion = parse_category_suggestion((response.text or "").strip())

        logger.info(
            "llm_suggest_category",
            category=suggestion.category,
            confidence=suggestion.confidence,
            processing_time_ms=round(elapsed_ms, 2),
        )
        return suggestion
