# Core Services
from src.services.errors import (
    MediaApiError,
    MethodNotAllowedError,
    RateLimitError,
    StorageError,
    ValidationError,
)
from src.services.blob_store import (
    BlobObject,
    BlobPutResult,
    BlobStoreInterface,
    DirectUploadTarget,
    InMemoryBlobStore,
    S3BlobStore,
    get_blob_store,
)
from src.services.spreadsheet import GuestbookWorkbook, SpreadsheetDecodeError
from src.services.form_parser import parse_form_fields
from src.services.rate_limit import InMemoryRateLimitStore, RateLimiter, RateLimitStore
from src.services.guestbook import (
    AppendResult,
    GuestbookEntry,
    GuestbookListing,
    GuestbookService,
)
from src.services.media_upload import DirectUpload, MediaUploadService, ProxyUpload
from src.services.media_listing import MediaListingService, MediaObject

__all__ = [
    "MediaApiError",
    "MethodNotAllowedError",
    "RateLimitError",
    "StorageError",
    "ValidationError",
    "BlobObject",
    "BlobPutResult",
    "BlobStoreInterface",
    "DirectUploadTarget",
    "InMemoryBlobStore",
    "S3BlobStore",
    "get_blob_store",
    "GuestbookWorkbook",
    "SpreadsheetDecodeError",
    "parse_form_fields",
    "InMemoryRateLimitStore",
    "RateLimiter",
    "RateLimitStore",
    "AppendResult",
    "GuestbookEntry",
    "GuestbookListing",
    "GuestbookService",
    "DirectUpload",
    "MediaUploadService",
    "ProxyUpload",
    "MediaListingService",
    "MediaObject",
]
