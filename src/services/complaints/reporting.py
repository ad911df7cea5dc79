"""Staff dashboard aggregates."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from src.models.enums import COMPLAINT_STATES, ComplaintCategory, ComplaintStatus, SLAState
from src.models.response import DashboardStats, DepartmentStats
from src.services.complaints import sla

if TYPE_CHECKING:
    from src.models.complaint import Complaint
    from src.services.complaints.repository import ComplaintRepository


def summarize(complaints: list[Complaint], now: datetime | None = None) -> DashboardStats:
    """Build the dashboard overview; SLA standing is evaluated at *now*."""
    current = now or datetime.now(UTC)

    by_status: Counter[str] = Counter({s.value: 0 for s in COMPLAINT_STATES})
    by_category: Counter[str] = Counter({c.value: 0 for c in ComplaintCategory})
    sla_counts: Counter[str] = Counter({s.value: 0 for s in SLAState})
    dept_total: Counter[str] = Counter()
    dept_resolved: Counter[str] = Counter()
    priorities: list[int] = []

    for complaint in complaints:
        by_status[str(complaint.status)] += 1
        by_category[str(complaint.category)] += 1
        dept_total[complaint.department] += 1
        if complaint.status == ComplaintStatus.RESOLVED:
            dept_resolved[complaint.department] += 1
        if complaint.ai_priority_score is not None:
            priorities.append(complaint.ai_priority_score)
        standing = sla.evaluate(complaint.created_at, complaint.category, complaint.status, now=current)
        sla_counts[str(standing.status)] += 1

    departments = [
        DepartmentStats(
            name=name,
            total=total,
            resolved=dept_resolved[name],
            resolution_rate=round(dept_resolved[name] / total * 100, 1) if total else 0.0,
        )
        for name, total in dept_total.most_common()
    ]

    return DashboardStats(
        total=len(complaints),
        by_status=dict(by_status),
        by_category=dict(by_category),
        departments=departments,
        sla=dict(sla_counts),
        average_priority=round(sum(priorities) / len(priorities), 1) if priorities else None,
    )


async def dashboard_stats(repository: ComplaintRepository) -> DashboardStats:
    return summarize(await repository.list_complaints())
