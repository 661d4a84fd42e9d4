"""FastAPI routes for the Media Guestbook API."""

import json
import logging
from urllib.parse import unquote

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from src.config import config
from src.models.api_models import (
    DirectUploadRequest,
    DirectUploadResponse,
    GuestbookEntryModel,
    GuestbookListResponse,
    GuestbookPostResponse,
    MediaItem,
    MediaListResponse,
    ProxyUploadResponse,
)
from src.services.blob_store import get_blob_store
from src.services.errors import ValidationError
from src.services.form_parser import parse_form_fields
from src.services.guestbook import GuestbookService
from src.services.media_listing import MediaListingService
from src.services.media_upload import MediaUploadService
from src.services.rate_limit import InMemoryRateLimitStore, RateLimiter


logger = logging.getLogger(__name__)

router = APIRouter()

# Global service instances
blob_store = get_blob_store(config)
rate_limiter = RateLimiter(
    store=InMemoryRateLimitStore(),
    window_seconds=config.rate_limit_seconds,
)
guestbook_service = GuestbookService(blob_store, rate_limiter=rate_limiter, app_config=config)
media_upload_service = MediaUploadService(blob_store, app_config=config)
media_listing_service = MediaListingService(blob_store, app_config=config)


def get_guestbook_service() -> GuestbookService:
    return guestbook_service


def get_media_upload_service() -> MediaUploadService:
    return media_upload_service


def get_media_listing_service() -> MediaListingService:
    return media_listing_service


def client_key_for(request: Request) -> str:
    """Best-effort client address: first X-Forwarded-For hop, then the peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def preflight_response(methods: str, headers: str = "Content-Type") -> Response:
    """Empty 200 answer to an OPTIONS request with permissive CORS headers."""
    return Response(
        status_code=200,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": methods,
            "Access-Control-Allow-Headers": headers,
        },
    )


@router.options("/guestbook")
async def guestbook_preflight() -> Response:
    return preflight_response("GET, POST, OPTIONS")


@router.post("/guestbook", response_model=GuestbookPostResponse)
async def post_guestbook_entry(
    request: Request,
    service: GuestbookService = Depends(get_guestbook_service),
) -> GuestbookPostResponse:
    """Append an entry to the guestbook spreadsheet.

    Accepts URL-encoded or multipart form fields: name, message,
    timestamp (optional) and the hidden honeypot field.
    """
    body = await request.body()
    fields = parse_form_fields(body, request.headers.get("content-type"))

    result = await run_in_threadpool(
        service.append,
        fields.get("name", ""),
        fields.get("message", ""),
        fields.get("timestamp") or None,
        fields.get(service.config.honeypot_field, ""),
        client_key_for(request),
    )

    return GuestbookPostResponse(
        url=result.url,
        filename=result.filename,
        timestamp=result.timestamp,
    )


@router.get(
    "/guestbook",
    response_model=GuestbookListResponse,
    response_model_exclude_none=True,
)
def get_guestbook_entries(
    service: GuestbookService = Depends(get_guestbook_service),
) -> GuestbookListResponse:
    """Return all guestbook entries in the order they were written."""
    listing = service.list_entries()
    return GuestbookListResponse(
        entries=[
            GuestbookEntryModel(
                timestamp=entry.timestamp,
                name=entry.name,
                message=entry.message,
            )
            for entry in listing.entries
        ],
        url=listing.url,
        filename=listing.filename,
    )


@router.options("/upload")
async def upload_preflight() -> Response:
    return preflight_response("POST, OPTIONS", "Content-Type, x-filename, content-type")


@router.post("/upload", response_model=None)
async def upload(
    request: Request,
    service: MediaUploadService = Depends(get_media_upload_service),
) -> JSONResponse:
    """Upload a media file.

    A JSON body {filename, contentType, size} requests a direct upload URL
    so the browser can send the bytes straight to the blob store. Any other
    body is treated as the raw file, named by the x-filename header, and
    streamed through to the blob store.
    """
    header_content_type = request.headers.get("content-type", "")

    if "application/json" in header_content_type.lower():
        body = await request.body()
        try:
            payload = json.loads(body or b"{}") or {}
            upload_request = DirectUploadRequest.model_validate(payload)
        except (json.JSONDecodeError, UnicodeDecodeError, PydanticValidationError) as e:
            raise ValidationError(f"Invalid upload request: {str(e)}") from e

        grant = await run_in_threadpool(
            service.request_direct_upload,
            upload_request.filename,
            upload_request.content_type,
            upload_request.size,
        )
        response_model = DirectUploadResponse(
            filename=grant.filename,
            content_type=grant.content_type,
            url=grant.url,
            upload_url=grant.upload_url,
            max_size=grant.max_size,
        )
        return JSONResponse(content=response_model.model_dump(by_alias=True))

    # Legacy path: proxy the upload through the service
    raw_filename = request.headers.get("x-filename")
    filename = unquote(raw_filename) if raw_filename else "unknown-file"
    content_type = header_content_type or "application/octet-stream"

    content_length = request.headers.get("content-length")
    declared_length = int(content_length) if content_length and content_length.isdigit() else None
    logger.info("Processing legacy upload: %s (%s, declared %s bytes)", filename, content_type, declared_length)

    result = await service.proxy_upload(
        filename,
        content_type,
        request.stream(),
        declared_length,
    )
    response_model = ProxyUploadResponse(
        filename=result.filename,
        size=result.size,
        content_type=result.content_type,
        url=result.url,
        timestamp=result.timestamp,
    )
    return JSONResponse(content=response_model.model_dump(by_alias=True))


@router.options("/list-media")
async def list_media_preflight() -> Response:
    return preflight_response("GET, OPTIONS")


@router.get(
    "/list-media",
    response_model=MediaListResponse,
    response_model_exclude_none=True,
)
def list_media(
    service: MediaListingService = Depends(get_media_listing_service),
) -> MediaListResponse:
    """List stored images and videos."""
    return MediaListResponse(
        media=[
            MediaItem(
                name=item.name,
                url=item.url,
                size=item.size,
                uploaded_at=item.uploaded_at,
            )
            for item in service.list_media()
        ]
    )
