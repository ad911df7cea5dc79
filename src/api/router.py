"""Main API router combining all v1 route modules.

Aggregates all routers under the ``/api/v1`` prefix so the
FastAPI application only needs to include a single router.

Includes:
    * Complaints: intake, evidence upload, tracking, withdrawal, feedback, upvotes
    * Staff: status transitions, assignment, listing, dashboard
    * AI: category suggestion
    * Health: liveness and readiness probes
"""

from __future__ import annotations

from fastapi import APIRouter

from src.api.v1 import ai, complaints, health, staff

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(complaints.router)
api_router.include_router(staff.router)
api_router.include_router(ai.router)
api_router.include_router(health.router)
