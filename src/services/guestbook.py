"""Guestbook Service persisting entries as rows of a spreadsheet blob.

Every append is a full read-modify-write of the single guestbook document:
1. Locate the document by listing the blob store
2. Download and decode it, or start a fresh workbook with the header row
3. Append one row [timestamp, name, message]
4. Serialize and upload under the same name, overwriting the old version

Appends are not serialized against each other. Two concurrent appends can
both read the same version, and the later upload wins.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from src.config import Config, config as default_config
from src.services.blob_store import BlobObject, BlobStoreInterface
from src.services.errors import StorageError
from src.services.rate_limit import RateLimiter
from src.services.spreadsheet import (
    GuestbookWorkbook,
    SpreadsheetDecodeError,
    XLSX_CONTENT_TYPE,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuestbookEntry:
    """A single guestbook row."""
    timestamp: str
    name: str
    message: str


@dataclass
class AppendResult:
    """Result of an append operation.

    Attributes:
        url: Public URL of the guestbook document
        filename: Storage name of the guestbook document
        timestamp: Timestamp recorded for the entry
        stored: False when the submission was silently dropped (honeypot)
    """
    url: str
    filename: str
    timestamp: str
    stored: bool = True


@dataclass
class GuestbookListing:
    """Entries read from the guestbook document."""
    entries: list[GuestbookEntry] = field(default_factory=list)
    url: Optional[str] = None
    filename: Optional[str] = None


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-01-01T12:00:00.000Z"""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class GuestbookService:
    """Appends and reads guestbook entries stored in the blob store."""

    def __init__(
        self,
        blob_store: BlobStoreInterface,
        rate_limiter: Optional[RateLimiter] = None,
        app_config: Optional[Config] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """Initialize the Guestbook Service.

        Args:
            blob_store: Store holding the guestbook document
            rate_limiter: Limiter applied to appends. Defaults to an in-memory
                          limiter using the configured window.
            app_config: Application configuration. Defaults to the global config.
            now: Clock used for generated timestamps
        """
        self.config = app_config or default_config
        self.blob_store = blob_store
        self.rate_limiter = (
            rate_limiter
            if rate_limiter is not None
            else RateLimiter(window_seconds=self.config.rate_limit_seconds)
        )
        self.filename = self.config.guestbook_filename
        self._now = now

    def _find_document(self) -> Optional[BlobObject]:
        for blob in self.blob_store.list_objects(prefix=self.filename):
            if blob.pathname == self.filename:
                return blob
        return None

    def _load_or_create(self, document: Optional[BlobObject]) -> GuestbookWorkbook:
        if document is None:
            logger.info("Guestbook document %s not found, creating it", self.filename)
            return GuestbookWorkbook.new()
        try:
            return GuestbookWorkbook.load(self.blob_store.get(document.pathname))
        except (StorageError, SpreadsheetDecodeError) as e:
            logger.warning(
                "Could not load guestbook document %s, starting fresh: %s",
                self.filename,
                e,
            )
            return GuestbookWorkbook.new()

    def append(
        self,
        name: str,
        message: str,
        timestamp: Optional[str] = None,
        honeypot: Optional[str] = None,
        client_key: Optional[str] = None,
    ) -> AppendResult:
        """Append one entry to the guestbook document.

        Args:
            name: Author name, may be empty
            message: Entry text, may be empty
            timestamp: Caller-supplied timestamp, stored verbatim when non-empty
            honeypot: Value of the hidden anti-spam field
            client_key: Client address used for rate limiting

        Returns:
            AppendResult with the document URL and recorded timestamp

        Raises:
            RateLimitError: If client_key appended within the cooldown window
            StorageError: If the blob store cannot be listed or written
        """
        timestamp = timestamp or utc_timestamp(self._now())

        if honeypot:
            logger.info("Honeypot field filled by %s, dropping submission", client_key or "unknown")
            return AppendResult(
                url=self.blob_store.public_url(self.filename),
                filename=self.filename,
                timestamp=timestamp,
                stored=False,
            )

        client_key = client_key or "unknown"
        self.rate_limiter.ensure_allowed(client_key)

        workbook = self._load_or_create(self._find_document())
        workbook.append_row([timestamp, name, message])

        result = self.blob_store.put(self.filename, workbook.to_bytes(), XLSX_CONTENT_TYPE)
        self.rate_limiter.record(client_key)
        logger.info(
            "Guestbook entry saved to %s (%d data rows)",
            self.filename,
            workbook.row_count - 1,
        )
        return AppendResult(url=result.url, filename=self.filename, timestamp=timestamp)

    def list_entries(self) -> GuestbookListing:
        """Read all entries in row order.

        Returns an empty listing when the document does not exist yet, and an
        empty listing carrying the document URL when it cannot be decoded.

        Raises:
            StorageError: If the blob store cannot be listed
        """
        document = self._find_document()
        if document is None:
            return GuestbookListing()

        try:
            workbook = GuestbookWorkbook.load(self.blob_store.get(document.pathname))
        except (StorageError, SpreadsheetDecodeError) as e:
            logger.warning("Could not read guestbook document %s: %s", self.filename, e)
            return GuestbookListing(url=document.url, filename=self.filename)

        entries = [
            GuestbookEntry(timestamp=timestamp, name=name, message=message)
            for timestamp, name, message in workbook.data_rows()
            if name or message
        ]
        return GuestbookListing(entries=entries, url=document.url, filename=self.filename)
