"""Error taxonomy for the media ingestion pipeline.

Every error carries a snake_case ``code`` used as the HTTP ``detail`` and a
default ``status_code`` the API layer maps it to.
"""

from __future__ import annotations


class IngestError(Exception):
    status_code = 500
    code = "ingest_failed"

    def __init__(self, message: str, *, code: str | None = None, diagnostics: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.diagnostics = diagnostics


class ValidationError(IngestError):
    """The uploaded payload is missing, too large, or of the wrong type."""

    status_code = 400
    code = "invalid_upload"


class NotFoundError(IngestError):
    status_code = 404
    code = "not_found"


class AuthorizationError(IngestError):
    status_code = 403
    code = "not_video_owner"


class ProbeError(IngestError):
    """ffprobe failed, timed out, or produced unusable output."""

    status_code = 422
    code = "probe_failed"


class RemuxError(IngestError):
    """ffmpeg failed, timed out, or did not leave a usable output file."""

    status_code = 422
    code = "remux_failed"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        diagnostics: str | None = None,
        returncode: int | None = None,
    ):
        super().__init__(message, code=code, diagnostics=diagnostics)
        self.returncode = returncode


class StoreError(IngestError):
    """The object store rejected an upload or could not sign a URL."""

    status_code = 502
    code = "object_store_failed"


__all__ = [
    "IngestError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ProbeError",
    "RemuxError",
    "StoreError",
]
