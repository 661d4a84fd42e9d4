"""Pydantic models for API requests and responses.

Field names are snake_case in Python and camelCase on the wire, matching
what the browser client sends and expects.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model serializing fields by their camelCase alias."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DirectUploadRequest(ApiModel):
    """Request model for issuing a direct upload URL."""
    filename: str = "upload"
    content_type: str = "application/octet-stream"
    size: int = 0


class DirectUploadResponse(ApiModel):
    """Response model for a direct upload grant."""
    success: bool = True
    filename: str
    content_type: str
    url: str
    upload_url: str
    max_size: int


class ProxyUploadResponse(ApiModel):
    """Response model for an upload streamed through the service."""
    success: bool = True
    filename: str
    size: int
    content_type: str
    url: str
    message: str = "Upload successful"
    timestamp: str


class GuestbookEntryModel(ApiModel):
    """One guestbook entry."""
    timestamp: str
    name: str
    message: str


class GuestbookPostResponse(ApiModel):
    """Response model for a guestbook submission."""
    success: bool = True
    url: str
    filename: str
    message: str = "Guestbook entry saved to Excel file."
    timestamp: str


class GuestbookListResponse(ApiModel):
    """Response model for reading the guestbook."""
    success: bool = True
    entries: list[GuestbookEntryModel]
    url: str | None = None
    filename: str | None = None


class MediaItem(ApiModel):
    """One stored image or video."""
    name: str
    url: str
    size: int
    uploaded_at: str | None = None


class MediaListResponse(ApiModel):
    """Response model for the media listing."""
    success: bool = True
    media: list[MediaItem]


class ErrorResponse(ApiModel):
    """Body returned for every failed request."""
    success: bool = False
    error: str
    details: str | None = None
