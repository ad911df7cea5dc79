"""Staff endpoints: status transitions, assignment, listing, dashboard.

Every route requires a principal carrying the staff role tag.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from src.middleware.auth import require_staff
from src.models.complaint import Complaint
from src.models.enums import ComplaintStatus
from src.models.request import AssignRequest, StatusTransitionRequest
from src.models.response import AssignResponse, DashboardStats, TransitionResponse
from src.services.complaints import reporting
from src.services.identity import Principal

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/staff", tags=["staff"])


def _state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"Service '{name}' not available")
    return service


@router.post("/complaints/{record_id}/status", response_model=TransitionResponse)
async def transition_complaint(
    record_id: str,
    body: StatusTransitionRequest,
    request: Request,
    staff: Principal = Depends(require_staff),
) -> TransitionResponse:
    """Move a complaint to a new status.

    Resolving requires ``resolution_image_url`` unless the complaint
    already carries a resolution photo.
    """
    lifecycle = _state(request, "lifecycle")
    complaint = await lifecycle.transition(
        record_id,
        body.new_status,
        actor_id=staff.principal_id,
        remark=body.remark,
        resolution_image_ref=body.resolution_image_url,
        department=body.department,
    )
    return TransitionResponse(status=complaint.status)


@router.post("/complaints/{record_id}/assign", response_model=AssignResponse)
async def assign_complaint(
    record_id: str,
    body: AssignRequest,
    request: Request,
    staff: Principal = Depends(require_staff),
) -> AssignResponse:
    engagement = _state(request, "engagement")
    assigned_to = await engagement.assign(record_id, body.assigned_to)
    return AssignResponse(assigned_to=assigned_to)


@router.get("/complaints", response_model=list[Complaint])
async def list_complaints(
    request: Request,
    status: ComplaintStatus | None = Query(default=None),
    department: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=100, ge=1, le=500),
    staff: Principal = Depends(require_staff),
) -> list[Complaint]:
    complaints = await _state(request, "repository").list_complaints()
    if status is not None:
        complaints = [c for c in complaints if c.status == status]
    if department:
        complaints = [c for c in complaints if c.department == department]
    return complaints[:limit]


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    request: Request,
    staff: Principal = Depends(require_staff),
) -> DashboardStats:
    stats = await reporting.dashboard_stats(_state(request, "repository"))
    logger.info("api.staff.dashboard", principal_id=staff.principal_id, total=stats.total)
    return stats
