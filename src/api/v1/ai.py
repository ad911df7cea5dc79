"""AI-assisted category suggestion for the report form."""

from __future__ import annotations

import base64
import binascii

import structlog
from fastapi import APIRouter, HTTPException, Request

from src.models.request import CategorizeRequest
from src.models.response import CategorySuggestionResponse
from src.services.complaints.errors import InvalidInputError
from src.services.evidence import validate_image

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/categorize", response_model=CategorySuggestionResponse)
async def categorize(body: CategorizeRequest, request: Request) -> CategorySuggestionResponse:
    """Suggest a category from a description, a photo, or both.

    Falls back to ``other`` with zero confidence when the model is not
    configured or fails.
    """
    triage = getattr(request.app.state, "triage", None)
    if triage is None:
        raise HTTPException(status_code=503, detail="Triage service not available")

    description = (body.description or "").strip() or None
    if description is None and not body.base64_image:
        raise InvalidInputError("Description or image is required for categorization")

    image_bytes: bytes | None = None
    mime_type: str | None = None
    if body.base64_image:
        try:
            image_bytes = base64.b64decode(body.base64_image, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidInputError("Image is not valid base64") from None
        mime_type = validate_image(image_bytes, body.mime_type)

    suggestion = await triage.suggest_category(description, image_bytes, mime_type)
    logger.info("api.ai.categorize", category=suggestion.category, confidence=suggestion.confidence)
    return CategorySuggestionResponse(
        category=suggestion.category,
        confidence=suggestion.confidence,
        reasoning=suggestion.reasoning,
    )
