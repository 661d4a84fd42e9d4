"""Tests for the Media Listing Service."""

from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings, strategies as st

from src.config import MEDIA_EXTENSIONS, Config
from src.services.blob_store import BlobObject, InMemoryBlobStore
from src.services.errors import StorageError
from src.services.media_listing import MediaListingService, MediaObject, is_media_name


stem = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789_- "),
    min_size=1,
    max_size=20,
)


def make_service(store) -> MediaListingService:
    return MediaListingService(
        store,
        app_config=Config(blob_backend="memory", guestbook_filename="guestbook.xlsx"),
    )


class TestMediaFilter:
    """Extension and guestbook filtering."""

    def test_only_media_survives_mixed_listing(self):
        store = InMemoryBlobStore()
        store.put("guestbook.xlsx", b"x", "application/octet-stream")
        store.put("notes.txt", b"x", "text/plain")
        store.put("photo.JPG", b"jpeg", "image/jpeg")

        media = make_service(store).list_media()

        assert [m.name for m in media] == ["photo.JPG"]
        assert media[0].url == store.public_url("photo.JPG")
        assert media[0].size == 4
        assert media[0].uploaded_at is not None

    @given(name=stem, ext=st.sampled_from(sorted(MEDIA_EXTENSIONS)), upper=st.booleans())
    @settings(max_examples=100)
    def test_recognized_extensions_included(self, name: str, ext: str, upper: bool):
        ext = ext.upper() if upper else ext
        assert is_media_name(f"{name}.{ext}")

    @pytest.mark.parametrize("name", [
        "notes.txt",
        "archive.zip",
        "jpg",
        "photo.jpg.txt",
        "guestbook.xlsx",
        "",
    ])
    def test_other_names_excluded(self, name: str):
        assert not is_media_name(name)

    def test_guestbook_name_excluded_case_insensitively(self):
        store = MagicMock()
        store.list_objects.return_value = [
            BlobObject("GUESTBOOK.XLSX", "u1", 1),
            BlobObject("albums/trip.mp4", "u2", 2, "2025-01-01T00:00:00+00:00"),
        ]

        media = make_service(store).list_media()

        assert media == [MediaObject("albums/trip.mp4", "u2", 2, "2025-01-01T00:00:00+00:00")]

    def test_listing_order_is_preserved(self):
        store = InMemoryBlobStore()
        for name in ["z.png", "a.mov", "m.webm", "b.heic"]:
            store.put(name, b"x", "application/octet-stream")

        assert [m.name for m in make_service(store).list_media()] == [
            "z.png", "a.mov", "m.webm", "b.heic",
        ]

    def test_empty_store(self):
        assert make_service(InMemoryBlobStore()).list_media() == []

    def test_storage_failure_propagates(self):
        store = MagicMock()
        store.list_objects.side_effect = StorageError("unreachable")

        with pytest.raises(StorageError):
            make_service(store).list_media()
