from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Callable, Sequence

import jwt
import pytest
from fastapi.testclient import TestClient

from vidingest.core.config import get_settings
from vidingest.core.db import Base, create_engine
from vidingest.ingest.runner import CommandResult, CommandRunner
from vidingest.main import create_app

TEST_SECRET = "test-secret"
TEST_ISSUER = "vidingest-test"
TEST_AUDIENCE = "vidingest"


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default vidingest environment bootstrap fixture for tests that manage their own .env",
    )


class FakeRunner(CommandRunner):
    """Simulates ffprobe/ffmpeg without invoking any binary.

    ffprobe calls answer with ``width``/``height``; ffmpeg calls copy the
    input file to the requested output path. Either tool can be made to fail.
    """

    def __init__(
        self,
        *,
        width: int = 1920,
        height: int = 1080,
        probe_result: CommandResult | None = None,
        remux_result: CommandResult | None = None,
        write_output: bool = True,
        on_run: Callable[[list[str]], None] | None = None,
    ):
        self.width = width
        self.height = height
        self.probe_result = probe_result
        self.remux_result = remux_result
        self.write_output = write_output
        self.on_run = on_run
        self.calls: list[list[str]] = []

    def run(self, command: Sequence[str], *, timeout_s: float | None = None) -> CommandResult:
        args = [str(part) for part in command]
        self.calls.append(args)
        if self.on_run:
            self.on_run(args)
        if args[0] == "ffprobe":
            if self.probe_result is not None:
                return self.probe_result
            stdout = json.dumps({"programs": [], "streams": [{"width": self.width, "height": self.height}]})
            return CommandResult(returncode=0, stdout=stdout, stderr="")
        if args[0] == "ffmpeg":
            if "-version" in args:
                return CommandResult(returncode=0, stdout="ffmpeg version test", stderr="")
            if self.remux_result is not None:
                return self.remux_result
            source = Path(args[args.index("-i") + 1])
            if self.write_output:
                Path(args[-1]).write_bytes(source.read_bytes())
            return CommandResult(returncode=0, stdout="", stderr="")
        return CommandResult(returncode=127, stdout="", stderr=f"{args[0]}: executable not found")


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path):
    if request.node.get_closest_marker("no_default_env"):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()
        return
    db_path = tmp_path / "vidingest_test.db"

    monkeypatch.setenv("VIDINGEST_ENV", "test")
    monkeypatch.setenv("VIDINGEST_LOG_LEVEL", "debug")
    monkeypatch.setenv("VIDINGEST_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("VIDINGEST_STORAGE_BACKEND", "local")
    monkeypatch.setenv("VIDINGEST_LOCAL_STORAGE_BASE_PATH", str(tmp_path / "objects"))
    monkeypatch.setenv("VIDINGEST_SCRATCH_ROOT", str(tmp_path / "scratch"))
    monkeypatch.setenv("VIDINGEST_ASSETS_ROOT", str(tmp_path / "assets"))
    monkeypatch.setenv("VIDINGEST_PUBLIC_BASE_URL", "http://localhost:8091")
    monkeypatch.setenv("VIDINGEST_JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("VIDINGEST_JWT_ISSUER", TEST_ISSUER)
    monkeypatch.setenv("VIDINGEST_JWT_AUDIENCE", TEST_AUDIENCE)

    get_settings.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_setup())

    yield

    async def _teardown() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    asyncio.run(_teardown())
    get_settings.cache_clear()


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def client(configure_environment, fake_runner):
    app = create_app()
    with TestClient(app) as client:
        client.app.state.runner = fake_runner
        yield client


def build_token(user_id: str, *, secret: str = TEST_SECRET) -> str:
    payload = {"sub": user_id, "iss": TEST_ISSUER, "aud": TEST_AUDIENCE}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture()
def owner_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-owner')}"}


@pytest.fixture()
def stranger_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-stranger')}"}
