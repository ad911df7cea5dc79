"""Service-level deadline evaluation.

Pure read-side arithmetic: nothing here is cached or persisted, and every
call recomputes the standing from ``created_at`` and the wall clock.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Final

from src.models.complaint import SLAResult
from src.models.enums import ComplaintStatus, SLAState

DEFAULT_SLA_HOURS: Final[int] = 72
WARNING_FRACTION: Final[float] = 0.2

SLA_HOURS: Final[dict[str, int]] = {
    "electricity": 12,
    "water": 24,
    "garbage": 24,
    "pothole": 48,
    "pollution": 48,
    "infrastructure": 72,
}


def sla_hours_for(category: str) -> int:
    return SLA_HOURS.get((category or "").strip().lower(), DEFAULT_SLA_HOURS)


def evaluate(
    created_at: datetime,
    category: str,
    status: str,
    now: datetime | None = None,
) -> SLAResult:
    """Compute the deadline standing of one complaint.

    Parameters
    ----------
    created_at:
        Submission time.  Naive datetimes are taken as UTC.
    category:
        Complaint category; unknown values use :data:`DEFAULT_SLA_HOURS`.
    status:
        Current status.  Resolved complaints are always ``good``.
    now:
        Evaluation instant, defaults to the current UTC time.

    Returns
    -------
    SLAResult
        ``breached`` when no time remains, ``warning`` when at most 20 % of
        the allowance remains, ``good`` otherwise.
    """
    total = sla_hours_for(category)

    if status == ComplaintStatus.RESOLVED:
        return SLAResult(
            status=SLAState.GOOD,
            hours_remaining=0.0,
            hours_overdue=0.0,
            is_overdue=False,
            total_sla_hours=total,
        )

    current = now or datetime.now(UTC)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)

    elapsed_hours = (current - created_at).total_seconds() / 3600
    remaining = total - elapsed_hours

    if remaining <= 0:
        state = SLAState.BREACHED
    elif remaining <= total * WARNING_FRACTION:
        state = SLAState.WARNING
    else:
        state = SLAState.GOOD

    return SLAResult(
        status=state,
        hours_remaining=round(max(0.0, remaining), 2),
        hours_overdue=round(max(0.0, -remaining), 2),
        is_overdue=remaining <= 0,
        total_sla_hours=total,
    )
