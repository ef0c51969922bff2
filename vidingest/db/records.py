from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from .models import Video


@dataclass(slots=True)
class VideoRecord:
    """Detached copy of a ``videos`` row handed to the ingest pipeline."""

    id: str
    user_id: str
    title: str = ""
    description: str = ""
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecordStore(Protocol):
    async def get_record(self, video_id: str) -> VideoRecord | None: ...

    async def update_record(self, record: VideoRecord) -> None: ...


def _to_record(row: Video) -> VideoRecord:
    return VideoRecord(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        video_url=row.video_url,
        thumbnail_url=row.thumbnail_url,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlRecordStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_record(self, *, user_id: str, title: str, description: str = "") -> VideoRecord:
        row = Video(id=uuid4().hex, user_id=user_id, title=title, description=description)
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return _to_record(row)

    async def get_record(self, video_id: str) -> VideoRecord | None:
        row = await self.session.get(Video, video_id)
        if row is None:
            return None
        return _to_record(row)

    async def update_record(self, record: VideoRecord) -> None:
        row = await self.session.get(Video, record.id)
        if row is None:
            raise LookupError(record.id)
        row.title = record.title
        row.description = record.description
        row.video_url = record.video_url
        row.thumbnail_url = record.thumbnail_url
        await self.session.commit()
        await self.session.refresh(row)
        record.updated_at = row.updated_at


__all__ = ["VideoRecord", "RecordStore", "SqlRecordStore"]
