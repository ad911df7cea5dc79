"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``CIVICSHAKTI_`` prefix; GCP / infrastructure settings use
their canonical environment variable names via ``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the CivicShakti complaint service.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``CIVICSHAKTI_``; GCP / infra keys
    use their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="CIVICSHAKTI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"
    cors_origins: str = "http://localhost:3000"

    # ── GCP ────────────────────────────────────────────────────────────
    gcp_project_id: str = Field(default="", validation_alias="GCP_PROJECT_ID")
    gcp_region: str = Field(default="asia-south1", validation_alias="GCP_REGION")

    # ── Vertex AI / Gemini (triage) ────────────────────────────────────
    vertex_ai_model: str = Field(default="gemini-2.0-flash", validation_alias="VERTEX_AI_MODEL")
    vertex_ai_location: str = Field(default="asia-south1", validation_alias="VERTEX_AI_LOCATION")
    triage_timeout_seconds: float = Field(default=15.0, gt=0)

    # ── Redis ──────────────────────────────────────────────────────────
    # Empty string keeps admission counters in process memory.
    redis_url: str = Field(default="", validation_alias="REDIS_URL")

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    # ── Submission admission control ───────────────────────────────────
    submission_window_seconds: int = Field(default=15 * 60, gt=0)
    submission_limit: int = Field(default=5, gt=0)
    trusted_proxy_count: int = Field(
        default=1,
        ge=0,
        validation_alias="TRUSTED_PROXY_COUNT",
    )

    # ── Identity ───────────────────────────────────────────────────────
    jwt_secret: str = Field(default="", validation_alias="JWT_SECRET")
    jwt_algorithm: str = "HS256"
    staff_email_domains: str = "civicshakti.gov,civicshakti.com"

    # ── Evidence store ─────────────────────────────────────────────────
    evidence_store_url: str = Field(default="", validation_alias="EVIDENCE_STORE_URL")
    evidence_fetch_timeout_seconds: float = 10.0
    evidence_max_bytes: int = 5 * 1024 * 1024  # 5 MB

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def staff_domain_list(self) -> list[str]:
        return [d.strip().lower().lstrip("@") for d in self.staff_email_domains.split(",") if d.strip()]


# Module-level singleton; import ``settings`` everywhere.
settings = Settings()
