"""Complaint lifecycle and triage engine."""

from src.services.complaints.admission import (
    AdmissionController,
    AdmissionDecision,
    InMemoryWindowStore,
    RedisWindowStore,
    build_window_store,
)
from src.services.complaints.engagement import EngagementService
from src.services.complaints.errors import (
    AuditWriteError,
    ComplaintError,
    ConcurrentModificationError,
    DependencyUnavailableError,
    DuplicateVoteError,
    EvidenceRequiredError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    RateLimitedError,
    TriageRejectedError,
    UnauthenticatedError,
)
from src.services.complaints.intake import IntakeOrchestrator, generate_tracking_code
from src.services.complaints.lifecycle import StatusTransitionEngine, allowed_transition
from src.services.complaints.repository import ComplaintRepository, InMemoryComplaintRepository
from src.services.complaints.routing import route
from src.services.complaints.triage import TriageEvaluator, TriageOutcome, TriageVerdict
from src.services.complaints.trust import TrustScoreAdjuster

__all__ = [
    "AdmissionController",
    "AdmissionDecision",
    "AuditWriteError",
    "ComplaintError",
    "ComplaintRepository",
    "ConcurrentModificationError",
    "DependencyUnavailableError",
    "DuplicateVoteError",
    "EngagementService",
    "EvidenceRequiredError",
    "ForbiddenError",
    "InMemoryComplaintRepository",
    "InMemoryWindowStore",
    "IntakeOrchestrator",
    "InvalidInputError",
    "NotFoundError",
    "RateLimitedError",
    "RedisWindowStore",
    "StatusTransitionEngine",
    "TriageEvaluator",
    "TriageOutcome",
    "TriageRejectedError",
    "TriageVerdict",
    "TrustScoreAdjuster",
    "UnauthenticatedError",
    "allowed_transition",
    "build_window_store",
    "generate_tracking_code",
    "route",
]
