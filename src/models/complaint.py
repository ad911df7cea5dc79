"""Complaint, audit trail, and reporter credibility models.

A :class:`Complaint` is created once at intake and then mutated only by
the status transition engine, the upvote operation, the feedback
operation, and staff assignment.  Every status change is paired with an
append-only :class:`StatusAuditEntry`; the ordered entries for a tracking
code form the authoritative timeline.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from src.models.enums import (
    ANONYMOUS_REPORTER,
    ComplaintCategory,
    ComplaintStatus,
    SLAState,
)

DEFAULT_TRUST_SCORE = 50


def _now() -> datetime:
    return datetime.now(UTC)


class Complaint(BaseModel):
    """A citizen-submitted infrastructure complaint."""

    model_config = {"frozen": False}

    record_id: str = Field(default_factory=lambda: uuid4().hex)
    tracking_code: str = Field(..., pattern=r"^C-[A-Z0-9]{6}$")
    category: ComplaintCategory
    description: str = Field(..., min_length=1, max_length=5000)
    address: str | None = None
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    image_ref: str | None = None
    resolution_image_ref: str | None = None
    status: ComplaintStatus = ComplaintStatus.PENDING
    department: str
    reporter_id: str
    # Kept for abuse review, never serialised.
    source_address: str = Field(..., exclude=True)
    device_fingerprint: str = Field(default="unknown", exclude=True)
    ai_priority_score: int | None = Field(default=None, ge=0, le=100)
    ai_analysis: str | None = None
    upvotes: int = Field(default=0, ge=0)
    upvoted_by: list[str] = Field(default_factory=list)
    feedback_rating: int | None = Field(default=None, ge=1, le=5)
    feedback_text: str | None = None
    assigned_to: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    version: int = Field(default=0, ge=0)

    @property
    def has_resolution_evidence(self) -> bool:
        return bool(self.resolution_image_ref and self.resolution_image_ref.strip())

    @property
    def is_anonymous(self) -> bool:
        return not self.reporter_id or self.reporter_id == ANONYMOUS_REPORTER


class StatusAuditEntry(BaseModel):
    """Immutable record of one status transition."""

    model_config = {"frozen": True}

    entry_id: str = Field(default_factory=lambda: uuid4().hex)
    tracking_code: str
    status_from: ComplaintStatus
    status_to: ComplaintStatus
    remark: str = ""
    actor_id: str
    created_at: datetime = Field(default_factory=_now)


class ReporterProfile(BaseModel):
    """Credibility record for one non-anonymous reporter."""

    model_config = {"frozen": False}

    reporter_id: str
    trust_score: int = Field(default=DEFAULT_TRUST_SCORE, ge=0, le=100)
    updated_at: datetime = Field(default_factory=_now)


class SLAResult(BaseModel):
    """Service-level deadline standing of a complaint at read time."""

    model_config = {"frozen": True}

    status: SLAState
    hours_remaining: float
    hours_overdue: float
    is_overdue: bool
    total_sla_hours: int
