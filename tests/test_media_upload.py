"""Tests for the Media Upload Service.

Direct uploads and proxied uploads share the same policy: image/video
content types only, and at most 500 MiB.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings, strategies as st

from src.config import ALLOWED_CONTENT_TYPES, Config
from src.services.blob_store import DirectUploadTarget, InMemoryBlobStore
from src.services.errors import StorageError, ValidationError
from src.services.media_upload import (
    MIB,
    MediaUploadService,
    describe_size,
    format_mib,
    is_allowed_content_type,
)


def make_service(store=None, **config_overrides) -> MediaUploadService:
    values = {"blob_backend": "memory", "max_upload_bytes": 500 * MIB, "upload_url_expires": 900}
    values.update(config_overrides)
    return MediaUploadService(
        store if store is not None else InMemoryBlobStore(),
        app_config=Config(**values),
    )


async def chunks(*parts: bytes):
    for part in parts:
        yield part


class TestContentTypePolicy:
    """Permissive subtype matching."""

    @given(content_type=st.sampled_from(ALLOWED_CONTENT_TYPES))
    @settings(max_examples=50)
    def test_allowed_types_accepted(self, content_type: str):
        assert is_allowed_content_type(content_type)
        assert is_allowed_content_type(content_type.upper())

    @pytest.mark.parametrize("content_type", [
        "image/x-png; charset=binary",
        "video/quicktime",
        "image/pjpeg",
    ])
    def test_variants_accepted_by_subtype(self, content_type: str):
        assert is_allowed_content_type(content_type)

    @pytest.mark.parametrize("content_type", [
        "application/pdf",
        "text/plain",
        "application/octet-stream",
        "",
    ])
    def test_other_types_rejected(self, content_type: str):
        assert not is_allowed_content_type(content_type)


class TestRequestDirectUpload:
    """Presigned upload URL issuance."""

    def test_valid_png_gets_upload_url(self):
        store = MagicMock()
        store.generate_upload_url.return_value = DirectUploadTarget(
            upload_url="https://signed.example/put?sig=1",
            url="https://bucket.example/cat.png",
        )
        service = make_service(store)

        grant = service.request_direct_upload("cat.png", "image/png", 1000)

        store.generate_upload_url.assert_called_once_with("cat.png", "image/png", expires_in=900)
        assert grant.upload_url == "https://signed.example/put?sig=1"
        assert grant.url == "https://bucket.example/cat.png"
        assert grant.filename == "cat.png"
        assert grant.content_type == "image/png"
        assert grant.max_size == 500 * MIB

    def test_oversized_file_rejected_with_size_in_message(self):
        service = make_service()

        with pytest.raises(ValidationError) as exc_info:
            service.request_direct_upload("big.mp4", "image/png", 600 * MIB)

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "File too large (600MB). Maximum size is 500MB."

    def test_exactly_max_size_is_allowed(self):
        service = make_service()

        grant = service.request_direct_upload("edge.mp4", "video/mp4", 500 * MIB)

        assert grant.upload_url

    def test_pdf_rejected(self):
        store = MagicMock()
        service = make_service(store)

        with pytest.raises(ValidationError, match="Invalid file type"):
            service.request_direct_upload("doc.pdf", "application/pdf", 1000)
        store.generate_upload_url.assert_not_called()

    def test_storage_failure_propagates(self):
        store = MagicMock()
        store.generate_upload_url.side_effect = StorageError("S3 BotoCoreError: no credentials")
        service = make_service(store)

        with pytest.raises(StorageError):
            service.request_direct_upload("cat.png", "image/png", 10)


class TestProxyUpload:
    """Uploads streamed through the service."""

    def test_stream_stored_under_filename(self):
        store = InMemoryBlobStore()
        service = make_service(store)

        result = asyncio.run(service.proxy_upload(
            "clip.mp4", "video/mp4", chunks(b"abc", b"", b"defg"), declared_length=7
        ))

        assert store.get("clip.mp4") == b"abcdefg"
        assert result.size == 7
        assert result.url == store.public_url("clip.mp4")
        assert result.content_type == "video/mp4"
        assert result.filename == "clip.mp4"
        assert result.timestamp.endswith("Z")

    def test_same_name_overwrites(self):
        store = InMemoryBlobStore()
        service = make_service(store)

        asyncio.run(service.proxy_upload("a.jpg", "image/jpeg", chunks(b"old")))
        asyncio.run(service.proxy_upload("a.jpg", "image/jpeg", chunks(b"new!")))

        assert store.get("a.jpg") == b"new!"
        assert [o.pathname for o in store.list_objects()] == ["a.jpg"]

    def test_invalid_type_rejected_before_reading_body(self):
        consumed = []

        async def body():
            consumed.append(True)
            yield b"%PDF"

        with pytest.raises(ValidationError):
            asyncio.run(make_service().proxy_upload("doc.pdf", "application/pdf", body(), 4))
        assert consumed == []

    def test_declared_length_over_limit_rejected(self):
        service = make_service(max_upload_bytes=10)

        with pytest.raises(ValidationError, match="File too large"):
            asyncio.run(service.proxy_upload("a.png", "image/png", chunks(b"x"), declared_length=11))

    def test_undeclared_body_over_limit_rejected_while_streaming(self):
        store = InMemoryBlobStore()
        service = make_service(store, max_upload_bytes=10)

        with pytest.raises(ValidationError):
            asyncio.run(service.proxy_upload("a.png", "image/png", chunks(b"123456", b"789012")))
        assert store.list_objects() == []


class TestFormatMib:
    @pytest.mark.parametrize("size,expected", [
        (0, 0),
        (MIB // 2, 1),
        (600 * MIB, 600),
        (int(1.4 * MIB), 1),
    ])
    def test_rounds_half_up(self, size: int, expected: int):
        assert format_mib(size) == expected


class TestDescribeSize:
    @pytest.mark.parametrize("size,expected", [
        (500 * MIB, "500MB"),
        (MIB // 2, "1MB"),
        (1024, "1KB"),
        (1500, "2KB"),
        (0, "0KB"),
    ])
    def test_small_limits_are_shown_in_kb(self, size: int, expected: str):
        assert describe_size(size) == expected

    def test_configured_small_ceiling_is_reported_in_kb(self):
        service = make_service(max_upload_bytes=1024)

        with pytest.raises(ValidationError) as exc_info:
            service.request_direct_upload("big.png", "image/png", 4096)

        assert exc_info.value.message == "File too large (4KB). Maximum size is 1KB."
