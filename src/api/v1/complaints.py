"""Citizen-facing complaint endpoints.

Submission, evidence upload, tracking, withdrawal, feedback and upvotes.
Engine exceptions propagate to the application's ``ComplaintError``
handler, which maps them to HTTP status codes.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from config.settings import settings
from src.middleware.auth import optional_principal, require_principal
from src.middleware.client_address import get_client_address
from src.models.complaint import Complaint, SLAResult, StatusAuditEntry
from src.models.request import FeedbackRequest, SubmitComplaintRequest, WithdrawRequest
from src.models.response import (
    ComplaintDetailResponse,
    EvidenceUploadResponse,
    SubmitComplaintResponse,
    UpvoteResponse,
    WithdrawResponse,
)
from src.services.complaints import sla
from src.services.complaints.errors import InvalidInputError, NotFoundError
from src.services.identity import Principal

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/complaints", tags=["complaints"])

# Public reads never reveal who reported or endorsed a complaint.
_PUBLIC_EXCLUDE: dict[str, set[str]] = {"complaint": {"reporter_id", "upvoted_by"}}


def _state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"Service '{name}' not available")
    return service


async def _detail(request: Request, complaint: Complaint) -> ComplaintDetailResponse:
    repository = _state(request, "repository")
    return ComplaintDetailResponse(
        complaint=complaint,
        sla=sla.evaluate(complaint.created_at, complaint.category, complaint.status),
        timeline=await repository.timeline(complaint.tracking_code),
    )


async def _require(request: Request, record_id: str) -> Complaint:
    complaint = await _state(request, "repository").get(record_id)
    if complaint is None:
        raise NotFoundError()
    return complaint


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


@router.post("", response_model=SubmitComplaintResponse, status_code=201)
async def submit_complaint(
    body: SubmitComplaintRequest,
    request: Request,
    principal: Principal | None = Depends(optional_principal),
) -> SubmitComplaintResponse:
    """Submit a new complaint.

    Admission control runs before the reporter check, so anonymous
    attempts still count against their source address.
    """
    intake = _state(request, "intake")
    complaint = await intake.submit(
        source_address=get_client_address(request),
        reporter_id=principal.principal_id if principal else None,
        category=body.category,
        description=body.description,
        address=body.address,
        latitude=body.lat,
        longitude=body.lng,
        image_ref=body.image_url,
        device_fingerprint=body.device_fingerprint,
    )
    return SubmitComplaintResponse(complaint_id=complaint.record_id, tracking_id=complaint.tracking_code)


@router.post("/evidence", response_model=EvidenceUploadResponse, status_code=201)
async def upload_evidence(
    request: Request,
    file: UploadFile = File(...),
    principal: Principal = Depends(require_principal),
) -> EvidenceUploadResponse:
    """Store a photo and return the reference to attach to a complaint."""
    store = _state(request, "evidence_store")
    # Read one byte past the limit so oversize uploads are detected without
    # buffering arbitrarily large bodies.
    data = await file.read(settings.evidence_max_bytes + 1)
    if len(data) > settings.evidence_max_bytes:
        raise InvalidInputError(f"Image exceeds {settings.evidence_max_bytes // (1024 * 1024)} MB limit")
    ref = await store.store(data, file.content_type or "")
    logger.info("api.evidence_uploaded", principal_id=principal.principal_id, size=len(data))
    return EvidenceUploadResponse(ref=ref)


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------


@router.get(
    "/track/{tracking_code}",
    response_model=ComplaintDetailResponse,
    response_model_exclude=_PUBLIC_EXCLUDE,
)
async def track_complaint(tracking_code: str, request: Request) -> ComplaintDetailResponse:
    complaint = await _state(request, "repository").get_by_tracking_code(tracking_code)
    if complaint is None:
        raise NotFoundError()
    return await _detail(request, complaint)


@router.get(
    "/{record_id}",
    response_model=ComplaintDetailResponse,
    response_model_exclude=_PUBLIC_EXCLUDE,
)
async def get_complaint(record_id: str, request: Request) -> ComplaintDetailResponse:
    return await _detail(request, await _require(request, record_id))


@router.get("/{record_id}/sla", response_model=SLAResult)
async def get_sla_status(record_id: str, request: Request) -> SLAResult:
    complaint = await _require(request, record_id)
    return sla.evaluate(complaint.created_at, complaint.category, complaint.status)


@router.get("/{record_id}/timeline", response_model=list[StatusAuditEntry])
async def get_timeline(record_id: str, request: Request) -> list[StatusAuditEntry]:
    complaint = await _require(request, record_id)
    return await _state(request, "repository").timeline(complaint.tracking_code)


# ---------------------------------------------------------------------------
# Citizen actions
# ---------------------------------------------------------------------------


@router.post("/{record_id}/withdraw", response_model=WithdrawResponse)
async def withdraw_complaint(
    record_id: str,
    body: WithdrawRequest,
    request: Request,
    principal: Principal = Depends(require_principal),
) -> WithdrawResponse:
    lifecycle = _state(request, "lifecycle")
    await lifecycle.withdraw(record_id, body.tracking_code, requester_id=principal.principal_id)
    return WithdrawResponse()


@router.post("/{record_id}/feedback")
async def submit_feedback(
    record_id: str,
    body: FeedbackRequest,
    request: Request,
    principal: Principal = Depends(require_principal),
) -> dict:
    engagement = _state(request, "engagement")
    await engagement.submit_feedback(record_id, body.rating, body.feedback_text)
    return {"success": True}


@router.post("/{record_id}/upvote", response_model=UpvoteResponse)
async def upvote_complaint(
    record_id: str,
    request: Request,
    principal: Principal = Depends(require_principal),
) -> UpvoteResponse:
    engagement = _state(request, "engagement")
    upvotes = await engagement.upvote(record_id, principal.principal_id)
    return UpvoteResponse(upvotes=upvotes)
