"""Complaint notifications.

The core only decides *that* a reporter should hear about a change; it
hands a template id and variables to a :class:`NotificationDispatcher`.
:class:`QueuedNotificationDispatcher` renders the message and keeps it in
an in-process queue that a delivery layer (email, SMS) drains.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import UTC, datetime
from typing import Any, Final, Protocol
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class Notification(BaseModel):
    """A single rendered notification awaiting delivery."""

    notification_id: str = Field(default_factory=lambda: uuid4().hex)
    recipient: str
    template_id: str
    subject: str
    message: str
    variables: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    sent: bool = False
    sent_at: datetime | None = None


class NotificationDispatcher(Protocol):
    async def notify(self, recipient: str, template_id: str, variables: dict[str, Any]) -> None: ...


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_SUBJECTS: Final[dict[str, str]] = {
    "status_update": "Update on your complaint {tracking_code}",
}

_TEMPLATES: Final[dict[str, str]] = {
    "status_update": (
        "Your complaint {tracking_code} is now '{new_status}'. "
        "Department: {department}. "
        "Remarks: {remark}"
    ),
}

_STATUS_LABELS: Final[dict[str, str]] = {
    "pending": "Pending",
    "reviewed": "Reviewed",
    "in_progress": "In Progress",
    "resolved": "Resolved",
    "escalated": "Escalated",
}


class _Defaulting(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(template_id: str, variables: dict[str, Any]) -> tuple[str, str]:
    """Return ``(subject, message)`` for a known template.

    Raises
    ------
    KeyError
        If *template_id* is not a known template.
    """
    values = _Defaulting({k: "" if v is None else v for k, v in variables.items()})
    if "new_status" in values:
        values["new_status"] = _STATUS_LABELS.get(str(values["new_status"]), values["new_status"])
    if not values.get("remark"):
        values["remark"] = "No additional remarks."
    subject = _SUBJECTS[template_id].format_map(values)
    message = _TEMPLATES[template_id].format_map(values)
    return subject, message


class QueuedNotificationDispatcher:
    """Renders notifications into a bounded in-memory delivery queue.

    Sent notifications leave the queue.  When *max_size* unsent entries
    are held, the oldest is dropped to make room for the next one.
    """

    __slots__ = ("_max_size", "_queue")

    def __init__(self, *, max_size: int = 10_000) -> None:
        self._max_size = max_size
        self._queue: OrderedDict[str, Notification] = OrderedDict()

    async def notify(self, recipient: str, template_id: str, variables: dict[str, Any]) -> None:
        if not recipient:
            raise ValueError("recipient is required")
        subject, message = render(template_id, variables)
        notification = Notification(
            recipient=recipient,
            template_id=template_id,
            subject=subject,
            message=message,
            variables=dict(variables),
        )
        while len(self._queue) >= self._max_size:
            _, dropped = self._queue.popitem(last=False)
            logger.warning(
                "notification.queue_evicted",
                notification_id=dropped.notification_id,
                max_size=self._max_size,
            )
        self._queue[notification.notification_id] = notification
        logger.info(
            "notification.queued",
            notification_id=notification.notification_id,
            template_id=template_id,
        )

    def get_pending_notifications(self) -> list[Notification]:
        return list(self._queue.values())

    def get_notifications_for(self, recipient: str) -> list[Notification]:
        return [n for n in self._queue.values() if n.recipient == recipient]

    def mark_sent(self, notification_id: str) -> Notification | None:
        """Remove a delivered notification from the queue and return it."""
        notification = self._queue.pop(notification_id, None)
        if notification is not None:
            notification.sent = True
            notification.sent_at = datetime.now(UTC)
        return notification

    @property
    def queue_size(self) -> int:
        """Number of pending notifications in the queue."""
        return len(self._queue)
