# Data Models

from src.models.api_models import (
    DirectUploadRequest,
    DirectUploadResponse,
    ErrorResponse,
    GuestbookEntryModel,
    GuestbookListResponse,
    GuestbookPostResponse,
    MediaItem,
    MediaListResponse,
    ProxyUploadResponse,
)

__all__ = [
    "DirectUploadRequest",
    "DirectUploadResponse",
    "ErrorResponse",
    "GuestbookEntryModel",
    "GuestbookListResponse",
    "GuestbookPostResponse",
    "MediaItem",
    "MediaListResponse",
    "ProxyUploadResponse",
]
