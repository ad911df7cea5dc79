"""CivicShakti service layer -- complaint engine and its collaborators.

The Vertex AI client (:mod:`src.services.llm`) is not imported here so
that ``import src.services`` does not pull in the ``vertexai`` SDK.
"""

from __future__ import annotations

from src.services.evidence import (
    EvidenceStore,
    HttpEvidenceStore,
    InMemoryEvidenceStore,
    build_evidence_store,
)
from src.services.identity import (
    IdentityVerifier,
    InvalidCredentialError,
    JWTIdentityVerifier,
    Principal,
)
from src.services.notifications import (
    Notification,
    NotificationDispatcher,
    QueuedNotificationDispatcher,
)

__all__ = [
    "EvidenceStore",
    "HttpEvidenceStore",
    "IdentityVerifier",
    "InMemoryEvidenceStore",
    "InvalidCredentialError",
    "JWTIdentityVerifier",
    "Notification",
    "NotificationDispatcher",
    "Principal",
    "QueuedNotificationDispatcher",
    "build_evidence_store",
]
