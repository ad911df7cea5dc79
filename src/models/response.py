from __future__ import annotations

from pydantic import BaseModel, Field

from src.models.complaint import Complaint, SLAResult, StatusAuditEntry


class SubmitComplaintResponse(BaseModel):
    success: bool = True
    complaint_id: str
    tracking_id: str


class TransitionResponse(BaseModel):
    success: bool = True
    status: str


class WithdrawResponse(BaseModel):
    success: bool = True
    message: str = "Complaint withdrawn successfully"


class UpvoteResponse(BaseModel):
    success: bool = True
    upvotes: int


class AssignResponse(BaseModel):
    success: bool = True
    assigned_to: str | None


class EvidenceUploadResponse(BaseModel):
    ref: str


class CategorySuggestionResponse(BaseModel):
    category: str
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""


class ComplaintDetailResponse(BaseModel):
    complaint: Complaint
    sla: SLAResult
    timeline: list[StatusAuditEntry]


class DepartmentStats(BaseModel):
    name: str
    total: int
    resolved: int
    resolution_rate: float


class DashboardStats(BaseModel):
    """Aggregated operational overview for staff."""

    total: int
    by_status: dict[str, int]
    by_category: dict[str, int]
    departments: list[DepartmentStats]
    sla: dict[str, int]
    average_priority: float | None
