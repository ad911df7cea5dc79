"""Persistence boundary for complaints, their audit trail, and reporter profiles.

Writes that must land together are single repository calls:

* :meth:`ComplaintRepository.create_complaint` stores a complaint and its
  ``none -> pending`` audit entry, or neither.
* :meth:`ComplaintRepository.apply_transition` stores a status change and
  its audit entry, or neither, and refuses a stale ``expected_version``.

Callers serialise read-modify-write cycles on one record with
:meth:`record_lock`; the version check catches anything that slips past a
lock held by a different process.
"""

from __future__ import annotations

import asyncio
import weakref
from collections import defaultdict
from datetime import UTC, datetime
from typing import Protocol

import structlog

from src.models.complaint import Complaint, ReporterProfile, StatusAuditEntry
from src.services.complaints.errors import (
    AuditWriteError,
    ConcurrentModificationError,
    NotFoundError,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# Attributes fixed at intake.
_IMMUTABLE_FIELDS: tuple[str, ...] = ("record_id", "tracking_code", "category", "reporter_id")


class KeyedLocks:
    """One :class:`asyncio.Lock` per key, released for collection once unused."""

    __slots__ = ("_locks",)

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def __call__(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


class ComplaintRepository(Protocol):
    def record_lock(self, record_id: str) -> asyncio.Lock: ...

    async def create_complaint(self, complaint: Complaint, initial_entry: StatusAuditEntry) -> None: ...

    async def get(self, record_id: str) -> Complaint | None: ...

    async def get_by_tracking_code(self, tracking_code: str) -> Complaint | None: ...

    async def tracking_code_exists(self, tracking_code: str) -> bool: ...

    async def list_complaints(self) -> list[Complaint]: ...

    async def apply_transition(
        self,
        updated: Complaint,
        entry: StatusAuditEntry,
        expected_version: int,
    ) -> Complaint: ...

    async def save(self, updated: Complaint, expected_version: int) -> Complaint: ...

    async def timeline(self, tracking_code: str) -> list[StatusAuditEntry]: ...

    async def get_profile(self, reporter_id: str) -> ReporterProfile | None: ...

    async def save_profile(self, profile: ReporterProfile) -> None: ...


class InMemoryComplaintRepository:
    """Process-local repository.

    Each composite write runs without an ``await`` between its parts, so
    no other coroutine can observe a complaint without its audit entry.
    Stored objects are copied on the way in and out.
    """

    __slots__ = ("_audit", "_by_tracking_code", "_complaints", "_locks", "_profiles")

    def __init__(self) -> None:
        self._complaints: dict[str, Complaint] = {}
        self._by_tracking_code: dict[str, str] = {}
        self._audit: defaultdict[str, list[StatusAuditEntry]] = defaultdict(list)
        self._profiles: dict[str, ReporterProfile] = {}
        self._locks = KeyedLocks()

    def record_lock(self, record_id: str) -> asyncio.Lock:
        return self._locks(record_id)

    # -- audit --------------------------------------------------------------

    def _append_audit(self, entry: StatusAuditEntry) -> None:
        self._audit[entry.tracking_code].append(entry)

    def _write_audit(self, entry: StatusAuditEntry) -> None:
        try:
            self._append_audit(entry)
        except Exception as exc:
            logger.error(
                "repository.audit_write_failed",
                tracking_code=entry.tracking_code,
                status_to=entry.status_to,
                exc_info=True,
            )
            raise AuditWriteError() from exc

    # -- complaints ---------------------------------------------------------

    async def create_complaint(self, complaint: Complaint, initial_entry: StatusAuditEntry) -> None:
        if complaint.record_id in self._complaints:
            raise ConcurrentModificationError(f"Record {complaint.record_id} already exists.")
        self._write_audit(initial_entry)
        self._complaints[complaint.record_id] = complaint.model_copy(deep=True)
        # Tracking codes are a convenience handle; the newest record wins a collision.
        self._by_tracking_code[complaint.tracking_code] = complaint.record_id

    async def get(self, record_id: str) -> Complaint | None:
        stored = self._complaints.get(record_id)
        return stored.model_copy(deep=True) if stored is not None else None

    async def get_by_tracking_code(self, tracking_code: str) -> Complaint | None:
        record_id = self._by_tracking_code.get((tracking_code or "").strip().upper())
        if record_id is None:
            return None
        return await self.get(record_id)

    async def tracking_code_exists(self, tracking_code: str) -> bool:
        return tracking_code in self._by_tracking_code

    async def list_complaints(self) -> list[Complaint]:
        ordered = sorted(self._complaints.values(), key=lambda c: c.created_at, reverse=True)
        return [c.model_copy(deep=True) for c in ordered]

    def _check_update(self, updated: Complaint, expected_version: int) -> Complaint:
        current = self._complaints.get(updated.record_id)
        if current is None:
            raise NotFoundError()
        if current.version != expected_version:
            raise ConcurrentModificationError()
        for name in _IMMUTABLE_FIELDS:
            if getattr(current, name) != getattr(updated, name):
                raise ValueError(f"{name} cannot change after intake")
        return current

    def _store(self, updated: Complaint, expected_version: int) -> Complaint:
        stored = updated.model_copy(
            deep=True,
            update={"version": expected_version + 1, "updated_at": datetime.now(UTC)},
        )
        self._complaints[stored.record_id] = stored
        return stored.model_copy(deep=True)

    async def apply_transition(
        self,
        updated: Complaint,
        entry: StatusAuditEntry,
        expected_version: int,
    ) -> Complaint:
        current = self._check_update(updated, expected_version)
        if entry.status_from != current.status or entry.status_to != updated.status:
            raise ValueError("audit entry does not describe this transition")
        self._write_audit(entry)
        return self._store(updated, expected_version)

    async def save(self, updated: Complaint, expected_version: int) -> Complaint:
        current = self._check_update(updated, expected_version)
        if current.status != updated.status:
            raise ValueError("status changes must go through apply_transition")
        return self._store(updated, expected_version)

    async def timeline(self, tracking_code: str) -> list[StatusAuditEntry]:
        return list(self._audit.get(tracking_code, ()))

    # -- reporter profiles --------------------------------------------------

    async def get_profile(self, reporter_id: str) -> ReporterProfile | None:
        stored = self._profiles.get(reporter_id)
        return stored.model_copy() if stored is not None else None

    async def save_profile(self, profile: ReporterProfile) -> None:
        self._profiles[profile.reporter_id] = profile.model_copy()
