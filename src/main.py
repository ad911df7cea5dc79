"""CivicShakti FastAPI application entry point.

Creates the FastAPI app, configures middleware, includes routers, and
manages the lifecycle of the complaint engine and its collaborators
(repository, admission counters, triage, evidence store, notifications,
identity verification).
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from src.api.errors import complaint_error_handler, unhandled_error_handler
from src.api.router import api_router
from src.services.complaints import (
    AdmissionController,
    ComplaintError,
    EngagementService,
    InMemoryComplaintRepository,
    IntakeOrchestrator,
    StatusTransitionEngine,
    TriageEvaluator,
    TrustScoreAdjuster,
    build_window_store,
)
from src.services.evidence import build_evidence_store
from src.services.identity import JWTIdentityVerifier
from src.services.notifications import QueuedNotificationDispatcher

if TYPE_CHECKING:
    from src.services.complaints.admission import WindowCounterStore
    from src.services.complaints.repository import ComplaintRepository
    from src.services.complaints.triage import ContentEvaluator
    from src.services.evidence import EvidenceStore
    from src.services.identity import IdentityVerifier
    from src.services.notifications import NotificationDispatcher

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(settings.log_level),
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def install_services(
    app: FastAPI,
    *,
    repository: ComplaintRepository,
    window_store: WindowCounterStore,
    evaluator: ContentEvaluator | None,
    evidence_store: EvidenceStore,
    notifier: NotificationDispatcher,
    identity: IdentityVerifier | None,
) -> None:
    """Build the complaint engine from its collaborators and attach it to ``app.state``."""
    admission = AdmissionController(
        window_store,
        limit=settings.submission_limit,
        window_seconds=settings.submission_window_seconds,
    )
    triage = TriageEvaluator(evaluator, timeout_seconds=settings.triage_timeout_seconds)
    trust = TrustScoreAdjuster(repository)

    app.state.repository = repository
    app.state.window_store = window_store
    app.state.admission = admission
    app.state.triage = triage
    app.state.trust = trust
    app.state.notifier = notifier
    app.state.evidence_store = evidence_store
    app.state.identity = identity
    app.state.intake = IntakeOrchestrator(repository, admission, triage, evidence_store)
    app.state.lifecycle = StatusTransitionEngine(repository, trust, notifier)
    app.state.engagement = EngagementService(repository)


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the complaint engine.

    On startup:
      1. Pick the admission counter store (Redis when configured)
      2. Initialise the Gemini triage client when a GCP project is set
      3. Initialise the evidence store and notification dispatcher
      4. Initialise the JWT identity verifier when a secret is set
      5. Wire the engine and store everything on ``app.state``

    On shutdown:
      - Wait for in-flight trust adjustments.
      - Close Redis and HTTP clients gracefully.
    """
    _configure_logging()
    logger.info(
        "app.startup",
        env=settings.env,
        gcp_project=settings.gcp_project_id,
        region=settings.gcp_region,
    )

    app.state.start_time = time.time()

    # -- 1. Admission counters ----------------------------------------------
    window_store = build_window_store(settings.redis_url or None)
    logger.info("app.admission_store_initialised", backend=type(window_store).__name__)

    # -- 2. Triage (Vertex AI / Gemini) -------------------------------------
    evaluator = None
    if settings.gcp_project_id:
        try:
            from src.services.llm import GeminiTriageClient

            evaluator = GeminiTriageClient(
                project_id=settings.gcp_project_id,
                region=settings.vertex_ai_location,
                model_name=settings.vertex_ai_model,
            )
            logger.info("app.triage_initialised", model=settings.vertex_ai_model)
        except Exception:
            logger.warning("app.triage_init_failed", exc_info=True)
    else:
        logger.warning("app.triage_not_configured", note="Submissions will use default triage values")

    # -- 3. Evidence store and notifications --------------------------------
    evidence_store = build_evidence_store(
        settings.evidence_store_url or None,
        timeout=settings.evidence_fetch_timeout_seconds,
        max_bytes=settings.evidence_max_bytes,
    )
    notifier = QueuedNotificationDispatcher()

    # -- 4. Identity --------------------------------------------------------
    identity = None
    if settings.jwt_secret:
        identity = JWTIdentityVerifier(
            settings.jwt_secret,
            staff_domains=settings.staff_domain_list,
            algorithm=settings.jwt_algorithm,
        )
    else:
        logger.warning("app.identity_not_configured", note="Authenticated endpoints will answer 401/503")

    # -- 5. Engine ----------------------------------------------------------
    install_services(
        app,
        repository=InMemoryComplaintRepository(),
        window_store=window_store,
        evaluator=evaluator,
        evidence_store=evidence_store,
        notifier=notifier,
        identity=identity,
    )

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")

    await app.state.trust.drain()

    for resource in (window_store, evidence_store):
        close = getattr(resource, "close", None)
        if close is not None:
            try:
                await close()
            except Exception:
                logger.warning("app.close_failed", resource=type(resource).__name__, exc_info=True)

    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CivicShakti API",
    description=(
        "CivicShakti -- citizen infrastructure complaint intake, automated "
        "triage, department routing, and resolution tracking."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_exception_handler(ComplaintError, complaint_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# -- CORS middleware --------------------------------------------------------
# SECURITY: allow_credentials=True must NOT be combined with allow_origins=["*"]
# per the CORS specification (browsers will reject it).
if settings.is_production:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:8000", "http://127.0.0.1:8000"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS", "HEAD"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

# -- Prometheus metrics -----------------------------------------------------
try:
    from prometheus_fastapi_instrumentator import Instrumentator

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics", "/api/v1/health"],
    ).instrument(app).expose(
        app,
        endpoint="/metrics",
        include_in_schema=not settings.is_production,
    )
    logger.info("app.prometheus_metrics_enabled")
except ImportError:
    logger.warning("app.prometheus_not_available")

# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "CivicShakti API",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "complaints": "/api/v1/complaints",
            "track": "/api/v1/complaints/track/{tracking_code}",
            "staff": "/api/v1/staff/complaints",
            "dashboard": "/api/v1/staff/dashboard",
            "categorize": "/api/v1/ai/categorize",
        },
    }
