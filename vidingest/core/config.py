from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="VIDINGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for access token validation.")
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None


class Settings(BaseSettings):
    """Centralised runtime configuration for the vidingest API."""

    model_config = SettingsConfigDict(
        env_prefix="VIDINGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "vidingest API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./vidingest.db",
        description="SQLAlchemy compatible DSN.",
    )

    storage_backend: Literal["local", "s3"] = Field(default="local", description="Active object store implementation.")
    local_storage_base_path: Path = Field(
        default_factory=lambda: Path("objects"),
        description="Root directory for the filesystem object store.",
    )
    s3_bucket: Optional[str] = None
    s3_region: Optional[str] = None
    s3_endpoint_url: Optional[str] = None

    scratch_root: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory that holds request-scoped scratch files.",
    )
    assets_root: Path = Field(default_factory=lambda: Path("assets"), description="Directory served under /assets.")
    public_base_url: str = Field(
        default="http://localhost:8091",
        description="Origin used when building locally served asset URLs.",
    )

    max_video_upload_bytes: int = Field(default=1 << 30, description="Hard limit for video uploads (1 GiB).")
    max_thumbnail_upload_bytes: int = Field(default=10 << 20, description="Hard limit for thumbnail uploads (10 MiB).")
    signed_url_expiry_s: int = Field(default=360, ge=1, description="Lifetime of playback URLs.")

    ffprobe_binary: str = Field(default="ffprobe")
    ffmpeg_binary: str = Field(default="ffmpeg")
    probe_timeout_s: float = Field(default=30.0, gt=0, description="Upper bound for a single ffprobe run.")
    remux_timeout_s: float = Field(default=600.0, gt=0, description="Upper bound for a single ffmpeg remux.")

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "VIDINGEST_ENV": "VIDINGEST_ENVIRONMENT",
        "VIDINGEST_DB_URL": "VIDINGEST_DATABASE_URL",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()
    secrets = Secrets()

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")
    if settings.storage_backend == "s3" and not settings.s3_bucket:
        raise ValueError("The s3 storage backend requires VIDINGEST_S3_BUCKET.")

    settings.secrets = secrets
    return settings


__all__ = ["Settings", "Secrets", "get_settings"]
