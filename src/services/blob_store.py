"""Blob store clients for media files and the guestbook document.

This module provides:
- A common interface for name-addressed object storage (put/get/list)
- An S3 implementation backed by boto3, including presigned direct-upload URLs
- An in-memory implementation used for local runs and tests
- A factory selecting the backend from configuration
"""

import io
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import ClientError, BotoCoreError

from src.config import Config, config as default_config
from src.services.errors import StorageError


logger = logging.getLogger(__name__)


@dataclass
class BlobObject:
    """One entry of a blob store listing."""
    pathname: str
    url: str
    size: int
    uploaded_at: Optional[str] = None


@dataclass
class BlobPutResult:
    """Result of a put operation."""
    pathname: str
    url: str


@dataclass
class DirectUploadTarget:
    """Pre-authorized URL a browser can upload bytes to.

    Attributes:
        upload_url: Short-lived URL accepting a PUT of the object bytes
        url: Public URL the object will have once uploaded
    """
    upload_url: str
    url: str


def _describe_client_error(e: ClientError) -> str:
    error_code = e.response.get("Error", {}).get("Code", "Unknown")
    error_msg = e.response.get("Error", {}).get("Message", str(e))
    return f"S3 ClientError ({error_code}): {error_msg}"


class BlobStoreInterface(ABC):
    """Abstract interface for name-addressed object storage.

    Objects are written under their pathname with overwrite-on-same-name
    semantics; no random suffix is ever added.
    """

    @abstractmethod
    def put(self, pathname: str, data: bytes, content_type: str) -> BlobPutResult:
        """Store bytes under pathname, replacing any existing object."""

    @abstractmethod
    def put_stream(
        self,
        pathname: str,
        stream: BinaryIO,
        content_type: str,
    ) -> BlobPutResult:
        """Store the contents of a readable binary stream under pathname."""

    @abstractmethod
    def get(self, pathname: str) -> bytes:
        """Download the object stored under pathname.

        Raises:
            StorageError: If the object is missing or the store is unreachable
        """

    @abstractmethod
    def list_objects(self, prefix: Optional[str] = None) -> list[BlobObject]:
        """List stored objects, optionally restricted to a name prefix."""

    @abstractmethod
    def generate_upload_url(
        self,
        pathname: str,
        content_type: str,
        expires_in: int,
    ) -> DirectUploadTarget:
        """Issue a short-lived URL the client can upload pathname to."""

    @abstractmethod
    def public_url(self, pathname: str) -> str:
        """Public URL of the object stored under pathname."""


class S3BlobStore(BlobStoreInterface):
    """Blob store backed by an S3 (or S3-compatible) bucket.

    Configuration is read from the application Config:
    - bucket_name: The bucket holding media and the guestbook document
    - region: AWS region
    - endpoint_url: Optional S3-compatible endpoint
    - public_base_url: Optional base URL objects are served from
    """

    def __init__(self, app_config: Optional[Config] = None, client=None):
        """Initialize the S3 blob store.

        Args:
            app_config: Application configuration. Defaults to the global config.
            client: Optional pre-built boto3 S3 client.
        """
        self.config = app_config or default_config
        self.bucket_name = self.config.bucket_name
        self.region = self.config.region
        self._client = client

    @property
    def client(self):
        """Lazy initialization of boto3 S3 client."""
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                endpoint_url=self.config.endpoint_url,
            )
        return self._client

    def public_url(self, pathname: str) -> str:
        if self.config.public_base_url:
            base = self.config.public_base_url.rstrip("/")
        elif self.config.endpoint_url:
            base = f"{self.config.endpoint_url.rstrip('/')}/{self.bucket_name}"
        else:
            base = f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com"
        return f"{base}/{quote(pathname, safe='/')}"

    def put(self, pathname: str, data: bytes, content_type: str) -> BlobPutResult:
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=pathname,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as e:
            raise StorageError(_describe_client_error(e)) from e
        except BotoCoreError as e:
            raise StorageError(f"S3 BotoCoreError: {str(e)}") from e

        return BlobPutResult(pathname=pathname, url=self.public_url(pathname))

    def put_stream(
        self,
        pathname: str,
        stream: BinaryIO,
        content_type: str,
    ) -> BlobPutResult:
        # upload_fileobj switches to a multipart upload for large bodies
        try:
            self.client.upload_fileobj(
                stream,
                self.bucket_name,
                pathname,
                ExtraArgs={"ContentType": content_type},
            )
        except ClientError as e:
            raise StorageError(_describe_client_error(e)) from e
        except BotoCoreError as e:
            raise StorageError(f"S3 BotoCoreError: {str(e)}") from e

        return BlobPutResult(pathname=pathname, url=self.public_url(pathname))

    def get(self, pathname: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=pathname)
            return response["Body"].read()
        except ClientError as e:
            raise StorageError(_describe_client_error(e)) from e
        except BotoCoreError as e:
            raise StorageError(f"S3 BotoCoreError: {str(e)}") from e

    def list_objects(self, prefix: Optional[str] = None) -> list[BlobObject]:
        params = {"Bucket": self.bucket_name}
        if prefix:
            params["Prefix"] = prefix

        objects: list[BlobObject] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**params):
                for obj in page.get("Contents", []):
                    last_modified = obj.get("LastModified")
                    objects.append(BlobObject(
                        pathname=obj["Key"],
                        url=self.public_url(obj["Key"]),
                        size=obj.get("Size", 0),
                        uploaded_at=last_modified.isoformat() if last_modified else None,
                    ))
        except ClientError as e:
            raise StorageError(_describe_client_error(e)) from e
        except BotoCoreError as e:
            raise StorageError(f"S3 BotoCoreError: {str(e)}") from e

        return objects

    def generate_upload_url(
        self,
        pathname: str,
        content_type: str,
        expires_in: int,
    ) -> DirectUploadTarget:
        try:
            upload_url = self.client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": pathname,
                    "ContentType": content_type,
                },
                ExpiresIn=expires_in,
            )
        except ClientError as e:
            raise StorageError(_describe_client_error(e)) from e
        except BotoCoreError as e:
            raise StorageError(f"S3 BotoCoreError: {str(e)}") from e

        return DirectUploadTarget(upload_url=upload_url, url=self.public_url(pathname))


class InMemoryBlobStore(BlobStoreInterface):
    """Blob store keeping objects in process memory.

    Used when BLOB_BACKEND=memory and in tests. Listing order is insertion
    order; overwriting an object keeps its original position.
    """

    def __init__(self, base_url: str = "memory://blobs"):
        self.base_url = base_url.rstrip("/")
        self._objects: dict[str, tuple[bytes, str, datetime]] = {}
        self._lock = threading.Lock()

    def public_url(self, pathname: str) -> str:
        return f"{self.base_url}/{quote(pathname, safe='/')}"

    def put(self, pathname: str, data: bytes, content_type: str) -> BlobPutResult:
        with self._lock:
            self._objects[pathname] = (bytes(data), content_type, datetime.now(timezone.utc))
        return BlobPutResult(pathname=pathname, url=self.public_url(pathname))

    def put_stream(
        self,
        pathname: str,
        stream: BinaryIO,
        content_type: str,
    ) -> BlobPutResult:
        buffer = io.BytesIO()
        while True:
            chunk = stream.read(64 * 1024)
            if not chunk:
                break
            buffer.write(chunk)
        return self.put(pathname, buffer.getvalue(), content_type)

    def get(self, pathname: str) -> bytes:
        with self._lock:
            stored = self._objects.get(pathname)
        if stored is None:
            raise StorageError(f"Blob not found: {pathname}")
        return stored[0]

    def list_objects(self, prefix: Optional[str] = None) -> list[BlobObject]:
        with self._lock:
            items = list(self._objects.items())
        return [
            BlobObject(
                pathname=name,
                url=self.public_url(name),
                size=len(data),
                uploaded_at=uploaded_at.isoformat(),
            )
            for name, (data, _content_type, uploaded_at) in items
            if not prefix or name.startswith(prefix)
        ]

    def generate_upload_url(
        self,
        pathname: str,
        content_type: str,
        expires_in: int,
    ) -> DirectUploadTarget:
        url = self.public_url(pathname)
        return DirectUploadTarget(upload_url=f"{url}?upload=1&expires={expires_in}", url=url)

    def content_type_of(self, pathname: str) -> Optional[str]:
        """Content type recorded for pathname, or None if absent."""
        with self._lock:
            stored = self._objects.get(pathname)
        return stored[1] if stored else None


def get_blob_store(app_config: Optional[Config] = None) -> BlobStoreInterface:
    """Factory function to get the configured blob store.

    Returns InMemoryBlobStore when BLOB_BACKEND is "memory",
    otherwise S3BlobStore.
    """
    app_config = app_config or default_config
    if app_config.blob_backend == "memory":
        logger.info("Using in-memory blob store")
        return InMemoryBlobStore(base_url=app_config.public_base_url or "memory://blobs")
    logger.info("Using S3 blob store (bucket=%s, region=%s)", app_config.bucket_name, app_config.region)
    return S3BlobStore(app_config)
