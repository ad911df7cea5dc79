"""Complaint intake: admission, validation, triage, routing, persistence.

A submission either creates exactly one complaint plus its first audit
entry, or nothing at all.  Every rejection happens before the single
composite write at the end.
"""

from __future__ import annotations

import secrets
import string
import time
from typing import TYPE_CHECKING, Final

import structlog
from pydantic import ValidationError

from src.models.complaint import Complaint, StatusAuditEntry
from src.models.enums import ANONYMOUS_REPORTER, ActorKind, ComplaintCategory, ComplaintStatus
from src.services.complaints.errors import (
    InvalidInputError,
    RateLimitedError,
    TriageRejectedError,
    UnauthenticatedError,
)
from src.services.complaints.routing import route

if TYPE_CHECKING:
    from src.services.complaints.admission import AdmissionController
    from src.services.complaints.repository import ComplaintRepository
    from src.services.complaints.triage import TriageEvaluator
    from src.services.evidence import EvidenceStore

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

TRACKING_PREFIX: Final[str] = "C-"
TRACKING_ALPHABET: Final[str] = string.ascii_uppercase + string.digits
TRACKING_LENGTH: Final[int] = 6
_TRACKING_ATTEMPTS: Final[int] = 3

CREATION_REMARK: Final[str] = "Complaint submitted successfully by citizen."
MAX_DESCRIPTION_LENGTH: Final[int] = 5000


def generate_tracking_code() -> str:
    """Return a fresh ``C-XXXXXX`` code; uniqueness is not guaranteed."""
    suffix = "".join(secrets.choice(TRACKING_ALPHABET) for _ in range(TRACKING_LENGTH))
    return f"{TRACKING_PREFIX}{suffix}"


class IntakeOrchestrator:
    """Coordinates the steps that turn a citizen report into a complaint.

    Parameters
    ----------
    repository:
        Complaint store.
    admission:
        Per-address submission limiter.
    triage:
        Fail-open content evaluator.
    evidence_store:
        Optional store used to load an attached photo for triage.
    """

    __slots__ = ("_admission", "_evidence", "_repository", "_triage")

    def __init__(
        self,
        repository: ComplaintRepository,
        admission: AdmissionController,
        triage: TriageEvaluator,
        evidence_store: EvidenceStore | None = None,
    ) -> None:
        self._repository = repository
        self._admission = admission
        self._triage = triage
        self._evidence = evidence_store

    async def submit(
        self,
        source_address: str,
        reporter_id: str | None,
        category: str | None,
        description: str | None,
        address: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        image_ref: str | None = None,
        device_fingerprint: str | None = None,
    ) -> Complaint:
        """Admit, validate, triage, route and persist one complaint.

        Returns
        -------
        Complaint
            The stored complaint; its ``tracking_code`` is what the citizen
            keeps.

        Raises
        ------
        RateLimitedError
            The source address used up its submission window.
        InvalidInputError
            Category or description missing, or category unknown.
        UnauthenticatedError
            No logged-in reporter.
        TriageRejectedError
            Triage judged the content invalid or the photo unrelated.
        AuditWriteError
            The complaint and its first audit entry could not be stored.
        """
        start = time.perf_counter()
        log = logger.bind(source_address=source_address)

        # 1. Admission
        decision = await self._admission.admit(source_address)
        if not decision.allowed:
            log.warning("intake.rejected.rate_limited", count=decision.count, limit=decision.limit)
            raise RateLimitedError(retry_after_seconds=decision.retry_after_seconds)

        # 2. Required fields
        category_value = (category or "").strip().lower()
        description_value = (description or "").strip()
        if not category_value or not description_value:
            raise InvalidInputError("Category and description are required")
        if len(description_value) > MAX_DESCRIPTION_LENGTH:
            raise InvalidInputError(f"Description exceeds {MAX_DESCRIPTION_LENGTH} characters")
        try:
            complaint_category = ComplaintCategory(category_value)
        except ValueError:
            raise InvalidInputError(f"Unknown category: {category!r}") from None

        # 3. Identity
        reporter = (reporter_id or "").strip()
        if not reporter or reporter == ANONYMOUS_REPORTER:
            raise UnauthenticatedError()

        # 4. Triage
        image_ref_value = (image_ref or "").strip() or None
        image_bytes, mime_type = await self._load_image(image_ref_value)
        verdict = await self._triage.evaluate(
            complaint_category.value,
            description_value,
            image_bytes,
            mime_type,
        )
        if not verdict.accepted:
            log.info(
                "intake.rejected.triage",
                category=complaint_category.value,
                is_valid=verdict.is_valid,
                image_matches=verdict.image_matches,
            )
            raise TriageRejectedError(verdict.analysis)

        # 5. Routing
        department = route(complaint_category)

        # 6. Tracking code
        tracking_code = await self._new_tracking_code()

        # 7-8. Complaint and its first audit entry, together
        try:
            complaint = Complaint(
                tracking_code=tracking_code,
                category=complaint_category,
                description=description_value,
                address=(address or "").strip() or None,
                latitude=latitude,
                longitude=longitude,
                image_ref=image_ref_value,
                status=ComplaintStatus.PENDING,
                department=department,
                reporter_id=reporter,
                source_address=source_address or "unknown",
                device_fingerprint=(device_fingerprint or "").strip() or "unknown",
                ai_priority_score=verdict.priority_score,
                ai_analysis=verdict.analysis,
            )
        except ValidationError as exc:
            raise InvalidInputError(str(exc.errors()[0].get("msg", "Invalid complaint"))) from None
        entry = StatusAuditEntry(
            tracking_code=tracking_code,
            status_from=ComplaintStatus.NONE,
            status_to=ComplaintStatus.PENDING,
            remark=CREATION_REMARK,
            actor_id=ActorKind.SYSTEM.value,
        )
        await self._repository.create_complaint(complaint, entry)

        log.info(
            "intake.accepted",
            record_id=complaint.record_id,
            tracking_code=tracking_code,
            category=complaint_category.value,
            department=department,
            triage_outcome=str(verdict.outcome),
            priority_score=verdict.priority_score,
            processing_time_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return complaint

    async def _load_image(self, image_ref: str | None) -> tuple[bytes | None, str | None]:
        if image_ref is None or self._evidence is None:
            return None, None
        try:
            return await self._evidence.load(image_ref)
        except Exception:
            logger.warning("intake.evidence_load_failed", image_ref=image_ref, exc_info=True)
            return None, None

    async def _new_tracking_code(self) -> str:
        code = generate_tracking_code()
        for _ in range(_TRACKING_ATTEMPTS - 1):
            if not await self._repository.tracking_code_exists(code):
                break
            code = generate_tracking_code()
        return code
