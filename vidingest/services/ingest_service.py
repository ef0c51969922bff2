from __future__ import annotations

import asyncio
import dataclasses
import secrets
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

from vidingest.core.config import Settings
from vidingest.core.logging import get_logger
from vidingest.core.storage import ObjectStore
from vidingest.db.records import RecordStore, VideoRecord
from vidingest.ingest import errors
from vidingest.ingest.prober import AspectRatio, MediaProber
from vidingest.ingest.remuxer import StreamRemuxer
from vidingest.ingest.runner import CommandRunner
from vidingest.ingest.scratch import scratch_file
from vidingest.ingest.thumbnails import ThumbnailEntry, ThumbnailRegistry

VIDEO_MEDIA_TYPE = "video/mp4"
THUMBNAIL_MEDIA_TYPES = frozenset({"image/jpeg", "image/png"})
ASSETS_URL_PREFIX = "/assets"


@dataclass(slots=True)
class UploadedMedia:
    """A file received from a multipart form, not yet touched by the pipeline."""

    stream: BinaryIO
    content_type: Optional[str]
    size: Optional[int] = None
    filename: Optional[str] = None

    def resolved_size(self) -> int:
        if self.size is not None:
            return self.size
        position = self.stream.tell()
        self.stream.seek(0, 2)
        size = self.stream.tell()
        self.stream.seek(position)
        self.size = size
        return size


def derive_storage_key(aspect: AspectRatio | str, video_id: str) -> str:
    value = aspect.value if isinstance(aspect, AspectRatio) else aspect
    return f"{value}/{video_id}.mp4"


def validate_upload(
    upload: UploadedMedia | None,
    *,
    label: str,
    max_bytes: int,
    accepted_types: frozenset[str],
) -> UploadedMedia:
    if upload is None:
        raise errors.ValidationError(f"{label.capitalize()} file missing", code=f"{label}_missing")
    if upload.resolved_size() > max_bytes:
        raise errors.ValidationError(
            f"{label.capitalize()} too large, max size: {max_bytes} bytes",
            code=f"{label}_too_large",
        )
    if not upload.content_type:
        raise errors.ValidationError(f"Missing Content-Type for {label}", code=f"{label}_content_type_missing")
    if upload.content_type not in accepted_types:
        raise errors.ValidationError(
            f"Invalid Content-Type for {label}: {upload.content_type}",
            code=f"{label}_content_type_invalid",
        )
    return upload


class IngestService:
    def __init__(
        self,
        settings: Settings,
        object_store: ObjectStore,
        records: RecordStore,
        thumbnails: ThumbnailRegistry,
        runner: CommandRunner,
    ):
        self.settings = settings
        self.object_store = object_store
        self.records = records
        self.thumbnails = thumbnails
        self.prober = MediaProber(runner, binary=settings.ffprobe_binary, timeout_s=settings.probe_timeout_s)
        self.remuxer = StreamRemuxer(runner, binary=settings.ffmpeg_binary, timeout_s=settings.remux_timeout_s)
        self.logger = get_logger(component="ingest_service")

    async def _load_owned_record(self, video_id: str, owner_id: str) -> VideoRecord:
        record = await self.records.get_record(video_id)
        if record is None:
            raise errors.NotFoundError("Couldn't find video", code="video_not_found")
        if record.user_id != owner_id:
            raise errors.AuthorizationError("Not authorized to update this video")
        return record

    async def ingest_video(self, video_id: str, owner_id: str, upload: UploadedMedia | None) -> VideoRecord:
        logger = self.logger.bind(video_id=video_id, user_id=owner_id)
        upload = validate_upload(
            upload,
            label="video",
            max_bytes=self.settings.max_video_upload_bytes,
            accepted_types=frozenset({VIDEO_MEDIA_TYPE}),
        )
        record = await self._load_owned_record(video_id, owner_id)
        logger.info("video_upload_started", size_bytes=upload.size, filename=upload.filename)

        try:
            with scratch_file(Path(self.settings.scratch_root), f"{video_id}.mp4") as scratch_path:
                await asyncio.to_thread(_copy_stream, upload.stream, scratch_path)

                aspect = await asyncio.to_thread(self.prober.probe_aspect_ratio, scratch_path)
                key = derive_storage_key(aspect, video_id)

                processed = await asyncio.to_thread(self.remuxer.remux_for_faststart, scratch_path)
                await asyncio.to_thread(self.object_store.put, key, processed, VIDEO_MEDIA_TYPE)

                record.video_url = key
                signed_url = await asyncio.to_thread(self.object_store.sign, key, self.settings.signed_url_expiry_s)
                await self.records.update_record(record)
        except errors.IngestError as exc:
            logger.error("video_upload_failed", code=exc.code, error=exc.message)
            raise

        logger.info("video_upload_completed", storage_key=key, aspect=aspect.value)
        return dataclasses.replace(record, video_url=signed_url)

    async def get_video(self, video_id: str, owner_id: str) -> VideoRecord:
        """Return the record with its storage key swapped for a fresh signed URL.

        The persisted record keeps the key; only the returned copy carries
        the expiring URL.
        """
        record = await self._load_owned_record(video_id, owner_id)
        return await asyncio.to_thread(self.sign_record, record)

    def sign_record(self, record: VideoRecord) -> VideoRecord:
        if not record.video_url:
            return dataclasses.replace(record)
        signed_url = self.object_store.sign(record.video_url, self.settings.signed_url_expiry_s)
        return dataclasses.replace(record, video_url=signed_url)

    async def ingest_thumbnail(self, video_id: str, owner_id: str, upload: UploadedMedia | None) -> VideoRecord:
        """Store a thumbnail and return the updated record with its video URL signed."""
        logger = self.logger.bind(video_id=video_id, user_id=owner_id)
        upload = validate_upload(
            upload,
            label="thumbnail",
            max_bytes=self.settings.max_thumbnail_upload_bytes,
            accepted_types=THUMBNAIL_MEDIA_TYPES,
        )
        record = await self._load_owned_record(video_id, owner_id)
        media_type = upload.content_type or ""

        data = await asyncio.to_thread(_read_all, upload.stream)
        filename = f"{secrets.token_urlsafe(32)}.{media_type.split('/')[1]}"
        try:
            await asyncio.to_thread(_write_asset, Path(self.settings.assets_root) / filename, data)
        except OSError as exc:
            logger.error("thumbnail_asset_write_failed", asset=filename, error=str(exc))
            raise errors.StoreError(f"Couldn't write thumbnail asset: {exc}", code="asset_write_failed") from exc

        record.thumbnail_url = f"{self.settings.public_base_url.rstrip('/')}{ASSETS_URL_PREFIX}/{filename}"
        await self.records.update_record(record)
        # Registry is only touched once the asset and the record are written.
        self.thumbnails.put(video_id, data, media_type)
        logger.info("thumbnail_upload_completed", media_type=media_type, size_bytes=len(data), asset=filename)
        return await asyncio.to_thread(self.sign_record, record)

    async def get_thumbnail(self, video_id: str) -> ThumbnailEntry:
        record = await self.records.get_record(video_id)
        if record is None:
            raise errors.NotFoundError("Couldn't find video", code="video_not_found")
        entry = self.thumbnails.get(video_id)
        if entry is None:
            raise errors.NotFoundError("Thumbnail not found", code="thumbnail_not_found")
        return entry


def _read_all(stream: BinaryIO) -> bytes:
    stream.seek(0)
    return stream.read()


def _copy_stream(stream: BinaryIO, target: Path) -> None:
    stream.seek(0)
    with target.open("wb") as handle:
        shutil.copyfileobj(stream, handle, length=1024 * 1024)


def _write_asset(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


__all__ = [
    "IngestService",
    "UploadedMedia",
    "derive_storage_key",
    "validate_upload",
    "VIDEO_MEDIA_TYPE",
    "THUMBNAIL_MEDIA_TYPES",
]
