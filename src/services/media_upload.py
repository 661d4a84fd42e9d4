"""Media Upload Service.

Two upload paths are supported:
- Direct upload: the service validates the file metadata and hands back a
  presigned URL so the browser uploads straight to the blob store, avoiding
  the host's request body limits.
- Proxied upload (legacy): the request body is streamed through the service
  into the blob store.
"""

import logging
import math
import tempfile
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from starlette.concurrency import run_in_threadpool

from src.config import (
    ALLOWED_CONTENT_TYPES,
    INVALID_TYPE_MESSAGE,
    Config,
    config as default_config,
)
from src.services.blob_store import BlobStoreInterface
from src.services.errors import ValidationError
from src.services.guestbook import utc_timestamp


logger = logging.getLogger(__name__)

MIB = 1024 * 1024

# Request bodies above this size spill from memory to a temporary file
SPOOL_MAX_BYTES = 8 * MIB


@dataclass
class DirectUpload:
    """Direct-upload grant returned to the browser."""
    filename: str
    content_type: str
    url: str
    upload_url: str
    max_size: int


@dataclass
class ProxyUpload:
    """Result of an upload streamed through the service."""
    filename: str
    size: int
    content_type: str
    url: str
    timestamp: str


def is_allowed_content_type(content_type: str) -> bool:
    """Match on the MIME subtype only, e.g. "quicktime" or "jpeg"."""
    content_type = (content_type or "").lower()
    return any(allowed.split("/")[1] in content_type for allowed in ALLOWED_CONTENT_TYPES)


def format_mib(size: int) -> int:
    """Size in MiB rounded half up."""
    return math.floor(size / MIB + 0.5)


def describe_size(size: int) -> str:
    """Human-readable size: whole MB, or KB below half a MiB."""
    if size >= MIB // 2:
        return f"{format_mib(size)}MB"
    return f"{math.ceil(size / 1024)}KB"


class MediaUploadService:
    """Validates media uploads and forwards them to the blob store."""

    def __init__(
        self,
        blob_store: BlobStoreInterface,
        app_config: Optional[Config] = None,
    ):
        self.config = app_config or default_config
        self.blob_store = blob_store
        self.max_size = self.config.max_upload_bytes

    def validate(self, content_type: str, size: int) -> None:
        """Check content type and size against the upload policy.

        Raises:
            ValidationError: If the type is not an image/video type or the
                             size exceeds the ceiling
        """
        if not is_allowed_content_type(content_type):
            raise ValidationError(INVALID_TYPE_MESSAGE)
        self._check_size(size)

    def _check_size(self, size: int) -> None:
        if size > self.max_size:
            raise ValidationError(
                f"File too large ({describe_size(size)}). "
                f"Maximum size is {describe_size(self.max_size)}."
            )

    def request_direct_upload(
        self,
        filename: str,
        content_type: str,
        size: int,
    ) -> DirectUpload:
        """Issue a presigned upload URL for a browser-to-store transfer.

        Args:
            filename: Name the object will be stored under
            content_type: MIME type declared by the browser
            size: File size in bytes

        Returns:
            DirectUpload with the upload URL and the future public URL
        """
        self.validate(content_type, size)

        target = self.blob_store.generate_upload_url(
            filename,
            content_type,
            expires_in=self.config.upload_url_expires,
        )
        logger.info("Issued direct upload URL for %s (%s, %d bytes)", filename, content_type, size)
        return DirectUpload(
            filename=filename,
            content_type=content_type,
            url=target.url,
            upload_url=target.upload_url,
            max_size=self.max_size,
        )

    async def proxy_upload(
        self,
        filename: str,
        content_type: str,
        body: AsyncIterator[bytes],
        declared_length: Optional[int] = None,
    ) -> ProxyUpload:
        """Stream a request body into the blob store.

        Validation happens before the body is consumed. The body is spooled
        to a temporary file once it outgrows SPOOL_MAX_BYTES, and the byte
        count is enforced against the ceiling while streaming in case the
        declared length was missing or wrong.

        Args:
            filename: Name the object will be stored under
            content_type: MIME type of the body
            body: Async iterator over body chunks
            declared_length: Content-Length header value, if any

        Returns:
            ProxyUpload with the public URL and received size
        """
        self.validate(content_type, declared_length or 0)
        logger.info("Proxy upload validated: %s (%s)", filename, content_type)

        received = 0
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES) as spool:
            async for chunk in body:
                if not chunk:
                    continue
                received += len(chunk)
                self._check_size(received)
                spool.write(chunk)
            spool.seek(0)

            result = await run_in_threadpool(
                self.blob_store.put_stream,
                filename,
                spool,
                content_type,
            )

        logger.info("Stored %s (%d bytes) at %s", filename, received, result.url)
        return ProxyUpload(
            filename=filename,
            size=received,
            content_type=content_type,
            url=result.url,
            timestamp=utc_timestamp(),
        )
