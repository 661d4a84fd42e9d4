"""Configuration and constants for the Media Guestbook API."""

import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return int(value)


@dataclass
class Config:
    """Application configuration settings.

    Every field defaults from an environment variable so the same code runs
    on a serverless host, in a container, or under pytest.
    """

    # Blob store backend: "s3" or "memory"
    blob_backend: str = field(
        default_factory=lambda: os.environ.get("BLOB_BACKEND", "s3").lower()
    )

    # S3 settings
    bucket_name: str = field(
        default_factory=lambda: os.environ.get("S3_BUCKET_NAME", "media-guestbook-uploads")
    )
    region: str = field(
        default_factory=lambda: os.environ.get("AWS_REGION", "us-east-1")
    )
    endpoint_url: str | None = field(
        default_factory=lambda: os.environ.get("S3_ENDPOINT_URL") or None
    )
    public_base_url: str | None = field(
        default_factory=lambda: os.environ.get("BLOB_PUBLIC_BASE_URL") or None
    )

    # Guestbook settings
    guestbook_filename: str = field(
        default_factory=lambda: os.environ.get("GUESTBOOK_FILENAME", "guestbook.xlsx")
    )
    rate_limit_seconds: int = field(
        default_factory=lambda: _env_int("GUESTBOOK_RATE_LIMIT_SECONDS", 5)
    )
    honeypot_field: str = field(
        default_factory=lambda: os.environ.get("GUESTBOOK_HONEYPOT_FIELD", "website")
    )

    # Upload settings
    max_upload_bytes: int = field(
        default_factory=lambda: _env_int("MAX_UPLOAD_BYTES", 500 * 1024 * 1024)
    )
    upload_url_expires: int = field(
        default_factory=lambda: _env_int("UPLOAD_URL_EXPIRES_SECONDS", 900)
    )

    debug: bool = field(
        default_factory=lambda: os.environ.get("APP_ENV", "").lower() == "development"
    )


# Browser MIME types vary, so uploads are matched on the subtype only
ALLOWED_CONTENT_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/heic",
    "video/mp4",
    "video/mov",
    "video/avi",
    "video/quicktime",
    "video/x-msvideo",
    "video/webm",
)

INVALID_TYPE_MESSAGE = (
    "Invalid file type. Allowed: images (JPEG/PNG/GIF/WebP/HEIC) "
    "or videos (MP4/MOV/QuickTime/AVI/WebM)."
)

# File extensions shown in the media listing
MEDIA_EXTENSIONS = frozenset(
    {"jpg", "jpeg", "png", "gif", "webp", "heic", "mp4", "mov", "avi", "webm"}
)

GUESTBOOK_SHEET_TITLE = "Guestbook"
GUESTBOOK_HEADER = ("Timestamp", "Name", "Message")

# Global config instance
config = Config()
