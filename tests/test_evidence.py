"""Tests for evidence photo validation and storage."""

from __future__ import annotations

import httpx
import pytest

from src.services.complaints.errors import DependencyUnavailableError, InvalidInputError
from src.services.evidence import (
    HttpEvidenceStore,
    InMemoryEvidenceStore,
    build_evidence_store,
    validate_image,
)


class TestValidateImage:
    def test_accepts_image(self) -> None:
        assert validate_image(b"\xff\xd8\xff", "image/JPEG; charset=binary") == "image/jpeg"

    @pytest.mark.parametrize("mime", ["application/pdf", "text/plain", "", None])
    def test_rejects_non_images(self, mime) -> None:
        with pytest.raises(InvalidInputError):
            validate_image(b"data", mime)

    def test_rejects_empty(self) -> None:
        with pytest.raises(InvalidInputError):
            validate_image(b"", "image/png")

    def test_rejects_oversize(self) -> None:
        with pytest.raises(InvalidInputError, match="MB"):
            validate_image(b"x" * 11, "image/png", max_bytes=10)


class TestInMemoryEvidenceStore:
    async def test_store_and_load(self) -> None:
        store = InMemoryEvidenceStore()
        ref = await store.store(b"\x89PNG", "image/png")
        assert ref.startswith("evidence://")
        assert ref.endswith(".png")
        assert await store.load(ref) == (b"\x89PNG", "image/png")

    async def test_refs_are_unique(self) -> None:
        store = InMemoryEvidenceStore()
        assert await store.store(b"a", "image/gif") != await store.store(b"a", "image/gif")

    async def test_unknown_ref(self) -> None:
        with pytest.raises(LookupError):
            await InMemoryEvidenceStore().load("evidence://nope.jpg")


class TestHttpEvidenceStore:
    async def test_upload_failure_is_dependency_error(self) -> None:
        store = HttpEvidenceStore("http://evidence.invalid/bucket")
        store._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        with pytest.raises(DependencyUnavailableError):
            await store.store(b"\xff\xd8", "image/jpeg")
        await store.close()

    async def test_round_trip_over_http(self) -> None:
        blobs: dict[str, tuple[bytes, str]] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "PUT":
                blobs[str(request.url)] = (request.content, request.headers["content-type"])
                return httpx.Response(201)
            content, mime = blobs[str(request.url)]
            return httpx.Response(200, content=content, headers={"content-type": mime})

        store = HttpEvidenceStore("http://evidence.invalid/bucket/")
        store._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        ref = await store.store(b"\xff\xd8", "image/jpeg")
        assert ref.startswith("http://evidence.invalid/bucket/")
        assert await store.load(ref) == (b"\xff\xd8", "image/jpeg")
        await store.close()

    async def test_foreign_ref_is_never_fetched(self) -> None:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, content=b"\xff\xd8", headers={"content-type": "image/jpeg"})

        store = HttpEvidenceStore("https://bucket.example/evidence")
        store._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        for ref in (
            "http://169.254.169.254/latest/meta-data/",
            "https://bucket.example/evidence-other/a.jpg",
            "https://bucket.example/evidence",
        ):
            with pytest.raises(LookupError):
                await store.load(ref)
        assert requested == [], "refs outside the store must not reach the network"
        await store.close()

    async def test_oversize_stream_is_abandoned(self) -> None:
        chunk = b"x" * 1024
        sent: list[int] = []

        async def body():
            for _ in range(64):
                sent.append(len(chunk))
                yield chunk

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body(), headers={"content-type": "image/png"})

        store = HttpEvidenceStore("https://bucket.example/evidence", max_bytes=4 * 1024)
        store._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with pytest.raises(ValueError, match="exceeds"):
            await store.load("https://bucket.example/evidence/big.png")
        assert sum(sent) <= 5 * 1024, "read must stop just past max_bytes"
        await store.close()

    async def test_declared_length_over_limit_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                content=b"\x89PNG",
                headers={"content-type": "image/png", "content-length": str(10 * 1024 * 1024)},
            )

        store = HttpEvidenceStore("https://bucket.example/evidence")
        store._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with pytest.raises(ValueError, match="exceeds"):
            await store.load("https://bucket.example/evidence/a.png")
        await store.close()


def test_build_without_url_is_in_memory() -> None:
    assert isinstance(build_evidence_store(None), InMemoryEvidenceStore)
