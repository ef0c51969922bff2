from __future__ import annotations

import shutil
import time
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import urlencode

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from vidingest.ingest.errors import StoreError

from .config import Settings
from .logging import get_logger

logger = get_logger(component="object_store")


class ObjectStore(ABC):
    """Durable bucket storage for processed media.

    ``put`` overwrites whatever lives at ``key``. ``sign`` never mutates
    stored state. Neither operation retries; failures surface as
    :class:`StoreError`.
    """

    @abstractmethod
    def put(self, key: str, local_path: Path, content_type: str) -> None: ...

    @abstractmethod
    def sign(self, key: str, expires_s: int) -> str: ...


class LocalObjectStore(ObjectStore):
    """Filesystem-backed object store suitable for development."""

    def __init__(self, base_path: Path):
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        target = (self.base_path / key).resolve()
        if not target.is_relative_to(self.base_path.resolve()):
            raise StoreError(f"Key escapes storage root: {key}", code="invalid_storage_key")
        return target

    def put(self, key: str, local_path: Path, content_type: str) -> None:
        target = self._resolve(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(local_path, target)
        except OSError as exc:
            raise StoreError(f"Failed to store {key}: {exc}") from exc
        logger.info("object_stored", backend="local", key=key, content_type=content_type)

    def sign(self, key: str, expires_s: int) -> str:
        target = self._resolve(key)
        query = urlencode({"expires": int(time.time()) + expires_s})
        return f"{target.as_uri()}?{query}"


class S3ObjectStore(ObjectStore):
    def __init__(
        self,
        bucket: str,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client: object | None = None,
    ):
        self.bucket = bucket
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=region,
            )
            client = session.client(
                "s3",
                endpoint_url=endpoint_url,
                config=Config(signature_version="s3v4"),
            )
        self.client = client

    def put(self, key: str, local_path: Path, content_type: str) -> None:
        try:
            self.client.upload_file(
                str(local_path),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("object_store_put_failed", bucket=self.bucket, key=key, error=str(exc))
            raise StoreError(f"Upload of {key} to {self.bucket} failed: {exc}") from exc
        logger.info("object_stored", backend="s3", bucket=self.bucket, key=key, content_type=content_type)

    def sign(self, key: str, expires_s: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_s,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("object_store_sign_failed", bucket=self.bucket, key=key, error=str(exc))
            raise StoreError(f"Signing {key} failed: {exc}", code="signing_failed") from exc


def get_object_store(settings: Settings) -> ObjectStore:
    if settings.storage_backend == "local":
        return LocalObjectStore(base_path=Path(settings.local_storage_base_path))
    if settings.storage_backend == "s3":
        if not settings.s3_bucket:
            raise ValueError("s3 storage backend requires a bucket name")
        return S3ObjectStore(
            settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.secrets.s3_access_key_id,
            secret_access_key=settings.secrets.s3_secret_access_key,
        )
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


__all__ = [
    "ObjectStore",
    "LocalObjectStore",
    "S3ObjectStore",
    "get_object_store",
]
