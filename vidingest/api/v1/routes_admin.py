from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from vidingest.api import deps
from vidingest.core.config import Settings
from vidingest.ingest.runner import CommandRunner

from .schemas import EnvCheckResponse


router = APIRouter(prefix="/admin", tags=["admin"])


class DevTokenRequest(BaseModel):
    user_id: str = Field(..., examples=["user-123"])
    ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)


class DevTokenResponse(BaseModel):
    token: str


def _binary_available(runner: CommandRunner, binary: str) -> bool:
    return runner.run([binary, "-version"], timeout_s=10).ok


@router.get("/env-check", response_model=EnvCheckResponse, summary="Validate ffmpeg toolchain")
async def env_check(
    _: deps.CurrentUser,
    runner: CommandRunner = Depends(deps.get_command_runner),
    settings: Settings = Depends(deps.get_app_settings),
) -> EnvCheckResponse:
    ffmpeg_ok = await asyncio.to_thread(_binary_available, runner, settings.ffmpeg_binary)
    ffprobe_ok = await asyncio.to_thread(_binary_available, runner, settings.ffprobe_binary)
    return EnvCheckResponse(ffmpeg=ffmpeg_ok, ffprobe=ffprobe_ok)


@router.post("/dev-token", response_model=DevTokenResponse, summary="Mint development JWT")
async def mint_dev_token(payload: DevTokenRequest, settings: Settings = Depends(deps.get_app_settings)) -> DevTokenResponse:
    if settings.environment_lower not in {"development", "dev"}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="dev_token_disabled")

    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=payload.ttl_minutes)
    claims: dict[str, object] = {
        "sub": payload.user_id,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if settings.jwt_issuer:
        claims["iss"] = settings.jwt_issuer
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience

    token = jwt.encode(claims, settings.secrets.jwt_secret, algorithm=settings.jwt_algorithm)
    return DevTokenResponse(token=token)


__all__ = ["router"]
