"""Complaint status transitions.

The status graph is deliberately permissive: staff may move a complaint
between any two states to correct a misclassification.  The single hard
rule is that entering ``resolved`` requires a resolution photo, either
already on the record or supplied with the transition.

Citizen withdrawal is a narrow case of the same engine: only from
``pending``, always to ``resolved``, authored by ``citizen`` with fixed
remark text, and only when the caller presents the matching tracking code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import structlog

from src.models.complaint import Complaint, StatusAuditEntry
from src.models.enums import COMPLAINT_STATES, ActorKind, ComplaintStatus, TrustOutcome
from src.services.complaints.errors import (
    EvidenceRequiredError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from src.services.complaints.routing import known_departments

if TYPE_CHECKING:
    from src.services.complaints.repository import ComplaintRepository
    from src.services.complaints.trust import TrustScoreAdjuster
    from src.services.notifications import NotificationDispatcher

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

WITHDRAWAL_REMARK: Final[str] = "Complaint withdrawn by citizen."
STATUS_UPDATE_TEMPLATE: Final[str] = "status_update"


def allowed_transition(
    from_status: ComplaintStatus | str,
    to_status: ComplaintStatus | str,
    has_evidence: bool,
) -> bool:
    """Return whether a complaint may move from *from_status* to *to_status*."""
    if from_status not in COMPLAINT_STATES or to_status not in COMPLAINT_STATES:
        return False
    if to_status == ComplaintStatus.RESOLVED:
        return has_evidence
    return True


def _parse_status(value: str) -> ComplaintStatus:
    try:
        status = ComplaintStatus((value or "").strip().lower())
    except ValueError:
        raise InvalidInputError(f"Unknown status: {value!r}.") from None
    if status not in COMPLAINT_STATES:
        raise InvalidInputError(f"Unknown status: {value!r}.")
    return status


class StatusTransitionEngine:
    """Applies guarded status changes and their audit entries.

    Parameters
    ----------
    repository:
        Complaint store; provides per-record locks and atomic
        complaint-plus-audit writes.
    trust_adjuster:
        Receives a detached adjustment when a complaint is resolved.
    notifier:
        Optional dispatcher told about every staff transition.
    """

    __slots__ = ("_notifier", "_repository", "_trust")

    def __init__(
        self,
        repository: ComplaintRepository,
        trust_adjuster: TrustScoreAdjuster,
        notifier: NotificationDispatcher | None = None,
    ) -> None:
        self._repository = repository
        self._trust = trust_adjuster
        self._notifier = notifier

    async def transition(
        self,
        record_id: str,
        target_status: str,
        actor_id: str,
        remark: str = "",
        resolution_image_ref: str | None = None,
        department: str | None = None,
    ) -> Complaint:
        """Move a complaint to *target_status* on behalf of a staff member.

        Raises
        ------
        InvalidInputError
            *target_status* is not a complaint state, or *department* is
            not a department the router knows.
        ForbiddenError
            No acting staff identity was given.
        NotFoundError
            No complaint has *record_id*.
        EvidenceRequiredError
            The target is ``resolved`` and no resolution photo exists.
        AuditWriteError
            The audit entry could not be written; nothing was changed.
        """
        target = _parse_status(target_status)
        if not actor_id:
            raise ForbiddenError()

        evidence = (resolution_image_ref or "").strip() or None
        new_department = (department or "").strip() or None
        if new_department is not None and new_department not in known_departments():
            raise InvalidInputError(f"Unknown department: {new_department!r}.")

        async with self._repository.record_lock(record_id):
            current = await self._repository.get(record_id)
            if current is None:
                raise NotFoundError()

            has_evidence = evidence is not None or current.has_resolution_evidence
            if not allowed_transition(current.status, target, has_evidence):
                logger.info(
                    "transition.rejected.evidence_required",
                    record_id=record_id,
                    status_from=current.status,
                )
                raise EvidenceRequiredError()

            changes: dict[str, object] = {"status": target}
            note = remark.strip()
            if evidence is not None:
                changes["resolution_image_ref"] = evidence
            if new_department and new_department != current.department:
                changes["department"] = new_department
                reassigned = f"Reassigned to {new_department}."
                note = f"{note} {reassigned}".strip()

            entry = StatusAuditEntry(
                tracking_code=current.tracking_code,
                status_from=current.status,
                status_to=target,
                remark=note,
                actor_id=actor_id,
            )
            stored = await self._repository.apply_transition(
                current.model_copy(update=changes),
                entry,
                expected_version=current.version,
            )

        logger.info(
            "transition.applied",
            record_id=record_id,
            tracking_code=stored.tracking_code,
            status_from=entry.status_from,
            status_to=entry.status_to,
            actor_id=actor_id,
        )

        # Credit only on entry into resolved, not on resolved -> resolved.
        entered_resolved = target == ComplaintStatus.RESOLVED and entry.status_from != ComplaintStatus.RESOLVED
        if entered_resolved and not stored.is_anonymous:
            self._trust.schedule(stored.reporter_id, TrustOutcome.RESOLVED)

        await self._notify_reporter(stored, note)
        return stored

    async def withdraw(
        self,
        record_id: str,
        tracking_code: str,
        requester_id: str | None = None,
    ) -> Complaint:
        """Citizen withdrawal of a still-pending complaint.

        When *requester_id* is given it must be the complaint's reporter.

        Raises
        ------
        NotFoundError
            No complaint has *record_id*.
        ForbiddenError
            *tracking_code* does not belong to the record, or the requester
            is not the reporter.
        InvalidInputError
            The complaint is no longer pending.
        """
        async with self._repository.record_lock(record_id):
            current = await self._repository.get(record_id)
            if current is None:
                raise NotFoundError()
            if current.tracking_code != (tracking_code or "").strip().upper():
                logger.warning("withdraw.rejected.tracking_mismatch", record_id=record_id)
                raise ForbiddenError("Invalid tracking ID")
            if requester_id is not None and requester_id != current.reporter_id:
                logger.warning("withdraw.rejected.not_reporter", record_id=record_id)
                raise ForbiddenError("Only the reporter can withdraw this complaint")
            if current.status != ComplaintStatus.PENDING:
                raise InvalidInputError("Only pending complaints can be withdrawn")

            entry = StatusAuditEntry(
                tracking_code=current.tracking_code,
                status_from=ComplaintStatus.PENDING,
                status_to=ComplaintStatus.RESOLVED,
                remark=WITHDRAWAL_REMARK,
                actor_id=ActorKind.CITIZEN.value,
            )
            stored = await self._repository.apply_transition(
                current.model_copy(update={"status": ComplaintStatus.RESOLVED}),
                entry,
                expected_version=current.version,
            )

        logger.info("withdraw.applied", record_id=record_id, tracking_code=stored.tracking_code)
        return stored

    async def _notify_reporter(self, complaint: Complaint, remark: str) -> None:
        if self._notifier is None or complaint.is_anonymous:
            return
        try:
            await self._notifier.notify(
                complaint.reporter_id,
                STATUS_UPDATE_TEMPLATE,
                {
                    "tracking_code": complaint.tracking_code,
                    "new_status": str(complaint.status),
                    "remark": remark,
                    "department": complaint.department,
                },
            )
        except Exception:
            logger.warning(
                "transition.notify_failed",
                tracking_code=complaint.tracking_code,
                exc_info=True,
            )
