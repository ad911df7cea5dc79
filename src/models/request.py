from __future__ import annotations

from pydantic import BaseModel, Field


class SubmitComplaintRequest(BaseModel):
    # Blank category/description are rejected by the intake orchestrator
    # with a 400 rather than by schema validation.
    category: str = Field(default="", max_length=50)
    description: str = Field(default="", max_length=5000)
    address: str | None = Field(default=None, max_length=500)
    lat: float | None = Field(default=None, ge=-90.0, le=90.0)
    lng: float | None = Field(default=None, ge=-180.0, le=180.0)
    image_url: str | None = Field(default=None, max_length=2000)
    device_fingerprint: str | None = Field(default=None, max_length=200)


class StatusTransitionRequest(BaseModel):
    new_status: str = Field(..., max_length=30)
    remark: str = Field(default="", max_length=2000)
    resolution_image_url: str | None = Field(default=None, max_length=2000)
    department: str | None = Field(default=None, max_length=200)


class WithdrawRequest(BaseModel):
    tracking_code: str = Field(..., max_length=20)


class FeedbackRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback_text: str | None = Field(default=None, max_length=2000)


class AssignRequest(BaseModel):
    assigned_to: str | None = Field(default=None, max_length=200)


class CategorizeRequest(BaseModel):
    description: str | None = Field(default=None, max_length=5000)
    base64_image: str | None = None
    mime_type: str | None = Field(default=None, max_length=100)
