"""
Image storage for treat pictures: S3-compatible object storage and an
in-memory double for testing.
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import BinaryIO, Protocol

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from treatshelf.errors import StorageError

logger = logging.getLogger(__name__)

# Entries are immutable, so clients may cache them aggressively (1 day).
CACHE_CONTROL = "public, max-age=86400"


def new_object_name(filename: str) -> str:
    """Return a unique object name that keeps the upload's file extension."""
    _, ext = os.path.splitext(filename or "")
    return f"{uuid.uuid4().hex}{ext.lower()}"


class ImageStorage(Protocol):
    """Defines the operations the app needs from object storage."""

    def upload_image(
        self, fileobj: BinaryIO, *, filename: str, content_type: str
    ) -> str:
        """Store the image and return its public URL."""
        ...


@dataclass
class InMemoryImageStorage:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)

    def upload_image(
        self, fileobj: BinaryIO, *, filename: str, content_type: str
    ) -> str:
        name = new_object_name(filename)
        self.stored_objects[name] = {
            "body": fileobj.read(),
            "content_type": content_type,
            "cache_control": CACHE_CONTROL,
        }
        return f"{self.base_url}/{name}"


@dataclass
class S3ImageStorage:
    """
    S3-compatible storage client. Uploaded objects are publicly readable.
    """

    bucket: str
    region: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    public_base_url: str = ""

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def public_url(self, name: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{name}"
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}/{name}"
        region = self.region or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{name}"

    def upload_image(
        self, fileobj: BinaryIO, *, filename: str, content_type: str
    ) -> str:
        name = new_object_name(filename)
        try:
            # Warning: public-read gives read access to anyone.
            self._client.upload_fileobj(
                fileobj,
                self.bucket,
                name,
                ExtraArgs={
                    "ACL": "public-read",
                    "ContentType": content_type,
                    "CacheControl": CACHE_CONTROL,
                },
            )
        except (Boto3Error, BotoCoreError, ClientError) as exc:
            raise StorageError(f"could not upload {name} to {self.bucket}: {exc}") from exc
        logger.info("Uploaded image %s to bucket %s", name, self.bucket)
        return self.public_url(name)
