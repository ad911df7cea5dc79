from src.models.complaint import (
    DEFAULT_TRUST_SCORE,
    Complaint,
    ReporterProfile,
    SLAResult,
    StatusAuditEntry,
)
from src.models.enums import (
    ANONYMOUS_REPORTER,
    COMPLAINT_STATES,
    ActorKind,
    ComplaintCategory,
    ComplaintStatus,
    SLAState,
    TrustOutcome,
)
from src.models.request import (
    AssignRequest,
    CategorizeRequest,
    FeedbackRequest,
    StatusTransitionRequest,
    SubmitComplaintRequest,
    WithdrawRequest,
)
from src.models.response import (
    AssignResponse,
    CategorySuggestionResponse,
    ComplaintDetailResponse,
    DashboardStats,
    DepartmentStats,
    EvidenceUploadResponse,
    SubmitComplaintResponse,
    TransitionResponse,
    UpvoteResponse,
    WithdrawResponse,
)

__all__ = [
    "ANONYMOUS_REPORTER",
    "COMPLAINT_STATES",
    "DEFAULT_TRUST_SCORE",
    "ActorKind",
    "AssignRequest",
    "AssignResponse",
    "CategorizeRequest",
    "CategorySuggestionResponse",
    "Complaint",
    "ComplaintCategory",
    "ComplaintDetailResponse",
    "ComplaintStatus",
    "DashboardStats",
    "DepartmentStats",
    "EvidenceUploadResponse",
    "FeedbackRequest",
    "ReporterProfile",
    "SLAResult",
    "SLAState",
    "StatusAuditEntry",
    "StatusTransitionRequest",
    "SubmitComplaintRequest",
    "SubmitComplaintResponse",
    "TransitionResponse",
    "TrustOutcome",
    "UpvoteResponse",
    "WithdrawRequest",
    "WithdrawResponse",
]
