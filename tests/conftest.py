"""Shared fixtures for the complaint engine tests."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from src.models.complaint import Complaint
from src.services.complaints.admission import AdmissionController, InMemoryWindowStore
from src.services.complaints.intake import IntakeOrchestrator
from src.services.complaints.lifecycle import StatusTransitionEngine
from src.services.complaints.repository import InMemoryComplaintRepository
from src.services.complaints.triage import TriageEvaluator
from src.services.complaints.trust import TrustScoreAdjuster
from src.services.notifications import QueuedNotificationDispatcher
from tests.fakes import FakeClock, FakeEvaluator


@dataclass
class Engine:
    repository: InMemoryComplaintRepository
    clock: FakeClock
    admission: AdmissionController
    evaluator: FakeEvaluator
    triage: TriageEvaluator
    intake: IntakeOrchestrator
    trust: TrustScoreAdjuster
    notifier: QueuedNotificationDispatcher
    lifecycle: StatusTransitionEngine

    async def submit(self, category: str = "pothole", **overrides: object) -> Complaint:
        params: dict[str, object] = {
            "source_address": "203.0.113.10",
            "reporter_id": "user-1",
            "category": category,
            "description": "Large pothole near the bus stop on MG Road.",
        }
        params.update(overrides)
        return await self.intake.submit(**params)


@pytest.fixture
def repository() -> InMemoryComplaintRepository:
    return InMemoryComplaintRepository()


@pytest.fixture
def engine(repository: InMemoryComplaintRepository) -> Engine:
    clock = FakeClock()
    admission = AdmissionController(InMemoryWindowStore(clock=clock), limit=5, window_seconds=900)
    evaluator = FakeEvaluator()
    triage = TriageEvaluator(evaluator, timeout_seconds=1.0)
    trust = TrustScoreAdjuster(repository)
    notifier = QueuedNotificationDispatcher()
    return Engine(
        repository=repository,
        clock=clock,
        admission=admission,
        evaluator=evaluator,
        triage=triage,
        intake=IntakeOrchestrator(repository, admission, triage),
        trust=trust,
        notifier=notifier,
        lifecycle=StatusTransitionEngine(repository, trust, notifier),
    )
