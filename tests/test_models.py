"""Tests for data models: enums, complaint records, requests and responses."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.models.complaint import Complaint, ReporterProfile, StatusAuditEntry
from src.models.enums import COMPLAINT_STATES, ComplaintCategory, ComplaintStatus
from src.models.request import FeedbackRequest, SubmitComplaintRequest


def _complaint(**overrides: object) -> Complaint:
    fields: dict[str, object] = {
        "tracking_code": "C-7KQ2ZX",
        "category": "water",
        "description": "No water since Monday",
        "department": "Water Board",
        "reporter_id": "user-1",
        "source_address": "203.0.113.10",
    }
    fields.update(overrides)
    return Complaint(**fields)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TestEnums:
    def test_none_is_not_a_complaint_state(self) -> None:
        assert ComplaintStatus.NONE not in COMPLAINT_STATES
        assert len(COMPLAINT_STATES) == 5

    def test_values_are_wire_strings(self) -> None:
        assert ComplaintStatus.IN_PROGRESS == "in_progress"
        assert str(ComplaintCategory.POTHOLE) == "pothole"


# ---------------------------------------------------------------------------
# Complaint
# ---------------------------------------------------------------------------


class TestComplaint:
    def test_defaults(self) -> None:
        complaint = _complaint()
        assert complaint.status == ComplaintStatus.PENDING
        assert complaint.upvotes == 0
        assert complaint.version == 0
        assert complaint.created_at.tzinfo is not None
        assert not complaint.has_resolution_evidence

    def test_source_address_never_serialised(self) -> None:
        dumped = _complaint(device_fingerprint="fp-1").model_dump()
        assert "source_address" not in dumped
        assert "device_fingerprint" not in dumped
        assert dumped["tracking_code"] == "C-7KQ2ZX"

    @pytest.mark.parametrize("code", ["c-7kq2zx", "C-7KQ2", "X-7KQ2ZX", "C-7KQ2Z!"])
    def test_tracking_code_format(self, code: str) -> None:
        with pytest.raises(ValidationError):
            _complaint(tracking_code=code)

    def test_unknown_category_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _complaint(category="traffic")

    def test_priority_bounds(self) -> None:
        with pytest.raises(ValidationError):
            _complaint(ai_priority_score=101)

    def test_blank_evidence_is_not_evidence(self) -> None:
        assert not _complaint(resolution_image_ref="   ").has_resolution_evidence
        assert _complaint(resolution_image_ref="evidence://a.jpg").has_resolution_evidence

    @pytest.mark.parametrize(("reporter", "anonymous"), [("anonymous", True), ("", True), ("user-1", False)])
    def test_is_anonymous(self, reporter: str, anonymous: bool) -> None:
        assert _complaint(reporter_id=reporter).is_anonymous is anonymous


class TestAuditEntry:
    def test_frozen(self) -> None:
        entry = StatusAuditEntry(
            tracking_code="C-7KQ2ZX",
            status_from=ComplaintStatus.NONE,
            status_to=ComplaintStatus.PENDING,
            actor_id="system",
        )
        with pytest.raises(ValidationError):
            entry.remark = "edited"


class TestReporterProfile:
    def test_default_score(self) -> None:
        assert ReporterProfile(reporter_id="user-1").trust_score == 50

    def test_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ReporterProfile(reporter_id="user-1", trust_score=101)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TestRequests:
    def test_submit_allows_blank_fields(self) -> None:
        request = SubmitComplaintRequest()
        assert request.category == ""
        assert request.description == ""

    def test_submit_coordinate_bounds(self) -> None:
        with pytest.raises(ValidationError):
            SubmitComplaintRequest(category="water", description="x", lat=91.0)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_feedback_rating_bounds(self, rating: int) -> None:
        with pytest.raises(ValidationError):
            FeedbackRequest(rating=rating)
