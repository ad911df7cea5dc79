"""Evidence photo storage.

Complaint records only ever hold the opaque reference returned by
:meth:`EvidenceStore.store`; nothing in the core parses it.  The store is
also asked to load a photo back so triage can compare it with the text.
"""

from __future__ import annotations

from typing import Final, Protocol
from uuid import uuid4

import httpx
import structlog

from src.services.complaints.errors import DependencyUnavailableError, InvalidInputError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

ALLOWED_MIME_TYPES: Final[frozenset[str]] = frozenset(
    {"image/jpeg", "image/png", "image/webp", "image/gif", "image/heic"}
)
DEFAULT_MAX_BYTES: Final[int] = 5 * 1024 * 1024

_EXTENSIONS: Final[dict[str, str]] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


class EvidenceStore(Protocol):
    async def store(self, data: bytes, mime_type: str) -> str: ...

    async def load(self, ref: str) -> tuple[bytes, str]: ...


def validate_image(data: bytes, mime_type: str | None, max_bytes: int = DEFAULT_MAX_BYTES) -> str:
    """Return the normalised MIME type or raise :class:`InvalidInputError`."""
    mime = (mime_type or "").split(";", 1)[0].strip().lower()
    if mime not in ALLOWED_MIME_TYPES:
        raise InvalidInputError("Only image uploads are accepted")
    if not data:
        raise InvalidInputError("Uploaded file is empty")
    if len(data) > max_bytes:
        raise InvalidInputError(f"Image exceeds {max_bytes // (1024 * 1024)} MB limit")
    return mime


class InMemoryEvidenceStore:
    """Keeps uploads in process memory; used when no store URL is configured."""

    __slots__ = ("_items", "_max_bytes")

    PREFIX: Final[str] = "evidence://"

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self._items: dict[str, tuple[bytes, str]] = {}
        self._max_bytes = max_bytes

    async def store(self, data: bytes, mime_type: str) -> str:
        mime = validate_image(data, mime_type, self._max_bytes)
        ref = f"{self.PREFIX}{uuid4().hex}.{_EXTENSIONS[mime]}"
        self._items[ref] = (data, mime)
        logger.info("evidence.stored", ref=ref, size=len(data))
        return ref

    async def load(self, ref: str) -> tuple[bytes, str]:
        try:
            return self._items[ref]
        except KeyError:
            raise LookupError(f"unknown evidence ref: {ref}") from None


class HttpEvidenceStore:
    """Object store reached over HTTP.

    Uploads are ``PUT`` to ``{base_url}/{object_name}`` and the resulting
    URL is the reference.  Loading only accepts references under
    ``base_url`` and streams the body, abandoning an oversize object once
    ``max_bytes`` is passed.  Redirects are not followed.

    Parameters
    ----------
    base_url:
        Bucket or upload endpoint root.
    timeout:
        Per-request timeout in seconds.
    max_bytes:
        Upper bound on uploaded and downloaded images.
    """

    __slots__ = ("_base_url", "_client", "_max_bytes")

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._max_bytes = max_bytes
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "CivicShakti/1.0"},
            follow_redirects=False,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def store(self, data: bytes, mime_type: str) -> str:
        mime = validate_image(data, mime_type, self._max_bytes)
        url = f"{self._base_url}/{uuid4().hex}.{_EXTENSIONS[mime]}"
        try:
            response = await self._client.put(url, content=data, headers={"Content-Type": mime})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("evidence.upload_failed", url=url, exc_info=True)
            raise DependencyUnavailableError("Evidence storage is unavailable") from exc
        logger.info("evidence.stored", ref=url, size=len(data))
        return url

    def owns(self, ref: str) -> bool:
        return ref.startswith(f"{self._base_url}/")

    async def load(self, ref: str) -> tuple[bytes, str]:
        """Fetch a photo previously returned by :meth:`store`.

        Raises
        ------
        LookupError
            *ref* does not point into this store.
        ValueError
            The object is not an image or is larger than ``max_bytes``.
        """
        if not self.owns(ref):
            raise LookupError(f"evidence ref is not held by this store: {ref}")

        async with self._client.stream("GET", ref) as response:
            response.raise_for_status()
            mime = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
            if mime not in ALLOWED_MIME_TYPES:
                raise ValueError(f"evidence at {ref} is not an image ({mime or 'unknown'})")

            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > self._max_bytes:
                raise ValueError(f"evidence at {ref} exceeds {self._max_bytes} bytes")

            chunks: list[bytes] = []
            size = 0
            async for chunk in response.aiter_bytes():
                size += len(chunk)
                if size > self._max_bytes:
                    raise ValueError(f"evidence at {ref} exceeds {self._max_bytes} bytes")
                chunks.append(chunk)

        return b"".join(chunks), mime


def build_evidence_store(
    base_url: str | None,
    timeout: float = 10.0,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> EvidenceStore:
    if base_url:
        return HttpEvidenceStore(base_url, timeout=timeout, max_bytes=max_bytes)
    return InMemoryEvidenceStore(max_bytes=max_bytes)
