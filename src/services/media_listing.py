"""Media Listing Service: projects the blob listing into a media manifest."""

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional

from src.config import MEDIA_EXTENSIONS, Config, config as default_config
from src.services.blob_store import BlobStoreInterface


@dataclass
class MediaObject:
    """A stored image or video."""
    name: str
    url: str
    size: int
    uploaded_at: Optional[str] = None


def is_media_name(pathname: str) -> bool:
    suffix = PurePosixPath(pathname).suffix.lower().lstrip(".")
    return suffix in MEDIA_EXTENSIONS


class MediaListingService:
    """Lists stored media, skipping the guestbook document."""

    def __init__(
        self,
        blob_store: BlobStoreInterface,
        app_config: Optional[Config] = None,
    ):
        self.config = app_config or default_config
        self.blob_store = blob_store

    def list_media(self) -> list[MediaObject]:
        """Return image/video objects in the store's listing order.

        Raises:
            StorageError: If the blob store cannot be listed
        """
        guestbook_name = self.config.guestbook_filename.lower()
        return [
            MediaObject(
                name=blob.pathname,
                url=blob.url,
                size=blob.size,
                uploaded_at=blob.uploaded_at,
            )
            for blob in self.blob_store.list_objects()
            if blob.pathname
            and not blob.pathname.lower().endswith(guestbook_name)
            and is_media_name(blob.pathname)
        ]
