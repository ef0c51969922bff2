from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from vidingest.api.v1 import get_api_router
from vidingest.core.config import get_settings
from vidingest.core.db import create_engine, create_session_factory
from vidingest.core.logging import configure_logging, get_logger
from vidingest.core.storage import get_object_store
from vidingest.ingest.runner import SubprocessRunner
from vidingest.ingest.thumbnails import ThumbnailRegistry
from vidingest.services.ingest_service import ASSETS_URL_PREFIX

logger = get_logger(component="app")


def create_app() -> FastAPI:
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    configure_logging(level=log_level)
    object_store = get_object_store(settings)
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    # Lives for the whole process; thumbnails are lost on restart.
    thumbnails = ThumbnailRegistry()
    runner = SubprocessRunner()

    assets_root = Path(settings.assets_root)
    assets_root.mkdir(parents=True, exist_ok=True)
    Path(settings.scratch_root).mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.object_store = object_store
        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.thumbnails = thumbnails
        app.state.runner = runner
        logger.info("app_started", environment=settings.environment, storage_backend=settings.storage_backend)
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )

    app.include_router(get_api_router())
    app.mount(ASSETS_URL_PREFIX, StaticFiles(directory=assets_root), name="assets")
    return app


__all__ = ["create_app"]
