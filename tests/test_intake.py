"""Tests for complaint intake orchestration."""

from __future__ import annotations

import re

import pytest

from src.models.enums import ComplaintStatus
from src.services.complaints.errors import (
    AuditWriteError,
    InvalidInputError,
    RateLimitedError,
    TriageRejectedError,
    UnauthenticatedError,
)
from src.services.complaints.intake import CREATION_REMARK, IntakeOrchestrator, generate_tracking_code
from src.services.complaints.repository import InMemoryComplaintRepository
from src.services.complaints.triage import ContentAnalysis, TriageEvaluator, TriageOutcome
from src.services.evidence import InMemoryEvidenceStore
from tests.fakes import FakeEvaluator


class TestTrackingCode:
    def test_format(self) -> None:
        for _ in range(50):
            assert re.fullmatch(r"C-[A-Z0-9]{6}", generate_tracking_code())


class TestSubmit:
    async def test_accepted_pothole(self, engine) -> None:
        """Valid pothole report: pending, Public Works, one audit entry."""
        complaint = await engine.submit("pothole")

        stored = await engine.repository.get(complaint.record_id)
        assert stored is not None
        assert stored.status == ComplaintStatus.PENDING
        assert stored.department == "Public Works"
        assert stored.ai_priority_score == 60
        assert stored.ai_analysis == "Clear report of road damage."
        assert stored.reporter_id == "user-1"
        assert stored.source_address == "203.0.113.10"

        timeline = await engine.repository.timeline(complaint.tracking_code)
        assert len(timeline) == 1
        assert timeline[0].status_from == ComplaintStatus.NONE
        assert timeline[0].status_to == ComplaintStatus.PENDING
        assert timeline[0].actor_id == "system"
        assert timeline[0].remark == CREATION_REMARK

    async def test_triage_rejection_persists_nothing(self, engine) -> None:
        engine.evaluator.analysis = ContentAnalysis(False, 10, "Contains hate speech.", True)

        with pytest.raises(TriageRejectedError) as exc_info:
            await engine.submit()

        assert exc_info.value.reason == "Contains hate speech."
        assert await engine.repository.list_complaints() == []

    async def test_image_mismatch_rejected(self, engine, repository) -> None:
        store = InMemoryEvidenceStore()
        ref = await store.store(b"\x89PNG fake", "image/png")
        intake = IntakeOrchestrator(repository, engine.admission, engine.triage, store)
        engine.evaluator.analysis = ContentAnalysis(True, 40, "Photo shows a cat.", False)

        with pytest.raises(TriageRejectedError):
            await intake.submit("203.0.113.10", "user-1", "garbage", "Overflowing bin", image_ref=ref)

        assert engine.evaluator.calls[0][2] == b"\x89PNG fake"
        assert engine.evaluator.calls[0][3] == "image/png"

    async def test_unloadable_image_triages_text_only(self, engine, repository) -> None:
        intake = IntakeOrchestrator(repository, engine.admission, engine.triage, InMemoryEvidenceStore())
        complaint = await intake.submit(
            "203.0.113.10", "user-1", "garbage", "Overflowing bin", image_ref="evidence://missing.jpg"
        )
        assert engine.evaluator.calls[0][2] is None
        assert complaint.image_ref == "evidence://missing.jpg"

    async def test_rate_limited_before_validation(self, engine) -> None:
        for _ in range(5):
            await engine.submit()
        with pytest.raises(RateLimitedError) as exc_info:
            await engine.submit(category="")
        assert exc_info.value.retry_after_seconds > 0
        assert len(await engine.repository.list_complaints()) == 5

    @pytest.mark.parametrize(
        ("category", "description"),
        [("", "Broken pipe"), ("water", ""), (None, "Broken pipe"), ("water", "   ")],
    )
    async def test_missing_fields_rejected(self, engine, category, description) -> None:
        with pytest.raises(InvalidInputError):
            await engine.submit(category=category, description=description)
        assert engine.evaluator.calls == [], "triage must not run for invalid input"

    async def test_unknown_category_rejected(self, engine) -> None:
        with pytest.raises(InvalidInputError):
            await engine.submit(category="traffic")

    @pytest.mark.parametrize("reporter", [None, "", "anonymous"])
    async def test_anonymous_rejected(self, engine, reporter) -> None:
        with pytest.raises(UnauthenticatedError):
            await engine.submit(reporter_id=reporter)
        assert await engine.repository.list_complaints() == []

    async def test_unconfigured_triage_uses_defaults(self, engine, repository) -> None:
        intake = IntakeOrchestrator(repository, engine.admission, TriageEvaluator(None))
        complaint = await intake.submit("203.0.113.10", "user-1", "water", "No water since Monday")
        assert complaint.ai_priority_score == 50
        assert "skipped" in complaint.ai_analysis

    async def test_triage_error_still_accepts(self, engine, repository) -> None:
        triage = TriageEvaluator(FakeEvaluator(error=TimeoutError()), timeout_seconds=1.0)
        intake = IntakeOrchestrator(repository, engine.admission, triage)
        complaint = await intake.submit("203.0.113.10", "user-1", "water", "No water since Monday")
        assert "Error connecting" in (complaint.ai_analysis or "")

    async def test_audit_failure_persists_nothing(self, engine, monkeypatch) -> None:
        def _fail(self, entry):
            raise OSError("disk full")

        monkeypatch.setattr(InMemoryComplaintRepository, "_append_audit", _fail)
        with pytest.raises(AuditWriteError):
            await engine.submit()
        assert await engine.repository.list_complaints() == []

    async def test_fresh_tracking_codes(self, engine) -> None:
        first = await engine.submit()
        second = await engine.submit()
        assert first.tracking_code != second.tracking_code
        assert first.record_id != second.record_id

    async def test_device_fingerprint_default(self, engine) -> None:
        complaint = await engine.submit()
        assert complaint.device_fingerprint == "unknown"

    async def test_verdict_outcome_evaluated(self, engine) -> None:
        verdict = await engine.triage.evaluate("pothole", "Hole")
        assert verdict.outcome == TriageOutcome.EVALUATED
