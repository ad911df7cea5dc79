"""Health check endpoints for the CivicShakti API.

Provides liveness and readiness probes for Kubernetes / Cloud Run
deployments.  The readiness check reports on the complaint engine's
collaborators.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness check response with individual service statuses."""

    status: str
    checks: dict[str, str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Returns 200 if the application process is running and able to
    handle requests.  Does *not* check downstream dependencies.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe.

    The complaint engine is ready when its repository and intake
    orchestrator exist.  Triage and the shared counter store only
    degrade the report since both fail open.
    """
    state = request.app.state
    checks: dict[str, str] = {}
    all_ok = True

    for name in ("repository", "intake", "lifecycle"):
        if getattr(state, name, None) is not None:
            checks[name] = "ok"
        else:
            checks[name] = "not_initialised"
            all_ok = False

    triage = getattr(state, "triage", None)
    checks["triage"] = "ok" if triage is not None and triage.configured else "skipped_default"

    window_store = getattr(state, "window_store", None)
    ping = getattr(window_store, "ping", None)
    if ping is None:
        checks["admission_store"] = "in_memory"
    else:
        try:
            checks["admission_store"] = "ok" if await ping() else "degraded"
        except Exception as exc:
            checks["admission_store"] = f"error: {exc!s}"

    status = "ready" if all_ok else "degraded"

    logger.info("health.readiness_check", status=status, checks=checks)

    return ReadinessResponse(status=status, checks=checks)
