from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vidingest.core.auth import get_current_user_id
from vidingest.core.config import Settings, get_settings
from vidingest.core.storage import ObjectStore
from vidingest.db.records import SqlRecordStore
from vidingest.ingest.errors import IngestError
from vidingest.ingest.runner import CommandRunner
from vidingest.ingest.thumbnails import ThumbnailRegistry
from vidingest.services.ingest_service import IngestService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover - misconfigured app
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_object_store(request: Request) -> ObjectStore:
    store: ObjectStore = request.app.state.object_store
    return store


def get_thumbnail_registry(request: Request) -> ThumbnailRegistry:
    registry: ThumbnailRegistry = request.app.state.thumbnails
    return registry


def get_command_runner(request: Request) -> CommandRunner:
    runner: CommandRunner = request.app.state.runner
    return runner


def get_app_settings() -> Settings:
    return get_settings()


def get_record_store(session: AsyncSession = Depends(get_session)) -> SqlRecordStore:
    return SqlRecordStore(session)


def get_ingest_service(
    records: SqlRecordStore = Depends(get_record_store),
    object_store: ObjectStore = Depends(get_object_store),
    thumbnails: ThumbnailRegistry = Depends(get_thumbnail_registry),
    runner: CommandRunner = Depends(get_command_runner),
    settings: Settings = Depends(get_app_settings),
) -> IngestService:
    return IngestService(settings, object_store, records, thumbnails, runner)


def to_http_error(exc: IngestError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.code)


IngestServiceDependency = Annotated[IngestService, Depends(get_ingest_service)]
RecordStoreDependency = Annotated[SqlRecordStore, Depends(get_record_store)]
CurrentUser = Annotated[str, Depends(get_current_user_id)]


__all__ = [
    "get_session",
    "get_object_store",
    "get_thumbnail_registry",
    "get_command_runner",
    "get_app_settings",
    "get_record_store",
    "get_ingest_service",
    "to_http_error",
    "IngestServiceDependency",
    "RecordStoreDependency",
    "CurrentUser",
]
