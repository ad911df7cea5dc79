from __future__ import annotations

from enum import StrEnum


class ComplaintCategory(StrEnum):
    __slots__ = ()

    POTHOLE = "pothole"
    GARBAGE = "garbage"
    WATER = "water"
    ELECTRICITY = "electricity"
    POLLUTION = "pollution"
    INFRASTRUCTURE = "infrastructure"
    OTHER = "other"


class ComplaintStatus(StrEnum):
    """Lifecycle states of a complaint.

    ``NONE`` is never stored on a complaint; it is the ``status_from`` of
    the audit entry written when the complaint is created.
    """

    __slots__ = ()

    NONE = "none"
    PENDING = "pending"
    REVIEWED = "reviewed"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    ESCALATED = "escalated"


# Statuses a complaint may actually hold.
COMPLAINT_STATES: frozenset[ComplaintStatus] = frozenset(
    s for s in ComplaintStatus if s is not ComplaintStatus.NONE
)


class TrustOutcome(StrEnum):
    __slots__ = ()

    RESOLVED = "resolved"
    REJECTED = "rejected"


class SLAState(StrEnum):
    __slots__ = ()

    GOOD = "good"
    WARNING = "warning"
    BREACHED = "breached"


class ActorKind(StrEnum):
    """Literal actor identities recorded on audit entries."""

    __slots__ = ()

    SYSTEM = "system"
    CITIZEN = "citizen"


ANONYMOUS_REPORTER: str = "anonymous"
