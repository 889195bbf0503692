"""Object stores for downloaded contestant images.

Keys are content-addressed by the image pipeline, so ``exists`` doubles as
the deduplication check.
"""

from __future__ import annotations

import logging
import pathlib
from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from dragwiki.config import StorageConfig
from dragwiki.errors import StorageError

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """Minimal blob store used by the image pipeline."""

    def exists(self, key: str) -> bool: ...

    def put(self, key: str, data: bytes, content_type: str) -> str: ...

    def public_url(self, key: str) -> str: ...


class LocalObjectStore:
    """Stores objects as files under a root directory."""

    def __init__(self, root: str | pathlib.Path, base_url: str = "/images") -> None:
        self.root = pathlib.Path(root)
        self.base_url = base_url.rstrip("/")

    def _path(self, key: str) -> pathlib.Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Object key escapes the store root: {key!r}")
        return path

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug("Stored %s (%s, %d bytes)", key, content_type, len(data))
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"


class S3ObjectStore:
    """Stores objects in an S3 bucket."""

    def __init__(self, bucket: str, region: str = "us-east-1", client: object = None) -> None:
        self.bucket = bucket
        self.region = region
        self._client = client or boto3.client("s3", region_name=region)

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"S3 head_object failed for {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"S3 head_object failed for {key}: {exc}") from exc
        return True

    def put(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 upload failed for {key}: {exc}") from exc
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def build_object_store(config: StorageConfig) -> ObjectStore:
    """Create the object store selected by *config*."""
    if config.object_store == "s3":
        return S3ObjectStore(config.s3_bucket, config.s3_region)
    return LocalObjectStore(config.local_root, config.public_base_url)
