"""
Image store abstraction for S3-compatible storage and in-memory testing.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from menufic.errors import ImageStoreError
from menufic.images import decode_image

logger = logging.getLogger(__name__)

# S3 DeleteObjects accepts at most this many keys per call.
BULK_DELETE_LIMIT = 1000


@dataclass
class UploadResult:
    path: str


class ImageStore(Protocol):
    """Defines the operations the services need from the image store."""

    def upload(self, image_base64: str, folder: str) -> UploadResult:
        ...

    def delete_file(self, path: str) -> None:
        ...

    def bulk_delete_files(self, paths: Iterable[str]) -> None:
        ...


def _object_key(folder: str, extension: str) -> str:
    return f"{folder.strip('/')}/{uuid.uuid4().hex}.{extension}"


@dataclass
class InMemoryImageStore:
    """Test double for image store interactions."""

    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def upload(self, image_base64: str, folder: str) -> UploadResult:
        image = decode_image(image_base64)
        path = _object_key(folder, image.extension)
        self.stored_objects[path] = image.data
        return UploadResult(path=path)

    def delete_file(self, path: str) -> None:
        if path not in self.stored_objects:
            raise ImageStoreError(f"No such file: {path}")
        del self.stored_objects[path]

    def bulk_delete_files(self, paths: Iterable[str]) -> None:
        for path in paths:
            self.stored_objects.pop(path, None)


@dataclass
class S3ImageStore:
    """
    S3-compatible image store. Paths returned by upload are object keys.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload(self, image_base64: str, folder: str) -> UploadResult:
        image = decode_image(image_base64)
        path = _object_key(folder, image.extension)
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=image.data,
                ContentType=image.content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise ImageStoreError(f"Upload to {path} failed: {e}") from e
        logger.info("Uploaded image %s (%d bytes)", path, len(image.data))
        return UploadResult(path=path)

    def delete_file(self, path: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=path.lstrip("/"))
        except (BotoCoreError, ClientError) as e:
            raise ImageStoreError(f"Delete of {path} failed: {e}") from e

    def bulk_delete_files(self, paths: Iterable[str]) -> None:
        keys = [path.lstrip("/") for path in paths]
        for start in range(0, len(keys), BULK_DELETE_LIMIT):
            batch = keys[start : start + BULK_DELETE_LIMIT]
            try:
                response = self._client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as e:
                raise ImageStoreError(f"Bulk delete failed: {e}") from e
            errors = response.get("Errors") or []
            if errors:
                raise ImageStoreError(
                    f"Bulk delete failed for {len(errors)} of {len(batch)} files"
                )
