from __future__ import annotations

import enum
import json
import math
from pathlib import Path
from typing import Any, Dict, Tuple

from vidingest.core.logging import get_logger

from .errors import ProbeError
from .runner import CommandRunner

logger = get_logger(component="media_prober")

LANDSCAPE_RATIO = math.floor((16 / 9) * 100)
PORTRAIT_RATIO = math.floor((9 / 16) * 100)


class AspectRatio(str, enum.Enum):
    landscape = "landscape"
    portrait = "portrait"
    other = "other"


def classify_aspect_ratio(width: int, height: int) -> AspectRatio:
    """Classify frame geometry by comparing truncated ratios exactly.

    Only dimensions whose ``floor(width / height * 100)`` equals the truncated
    16:9 or 9:16 value are landscape or portrait; everything else is ``other``.
    """
    if width <= 0 or height <= 0:
        raise ProbeError(f"Invalid video dimensions {width}x{height}", code="invalid_dimensions")
    ratio = math.floor((width / height) * 100)
    if ratio == LANDSCAPE_RATIO:
        return AspectRatio.landscape
    if ratio == PORTRAIT_RATIO:
        return AspectRatio.portrait
    return AspectRatio.other


def parse_stream_dimensions(raw_output: str) -> Tuple[int, int]:
    """Return ``(width, height)`` of the first stream in ffprobe JSON output."""
    try:
        data: Dict[str, Any] = json.loads(raw_output)
    except json.JSONDecodeError as exc:
        raise ProbeError("ffprobe returned malformed JSON", diagnostics=raw_output) from exc

    streams = data.get("streams") if isinstance(data, dict) else None
    if not streams:
        raise ProbeError("ffprobe reported no video stream", code="no_video_stream", diagnostics=raw_output)

    first = streams[0]
    try:
        return int(first["width"]), int(first["height"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ProbeError("ffprobe stream is missing width/height", diagnostics=raw_output) from exc


class MediaProber:
    def __init__(self, runner: CommandRunner, *, binary: str = "ffprobe", timeout_s: float | None = None):
        self.runner = runner
        self.binary = binary
        self.timeout_s = timeout_s

    def build_command(self, media_path: Path) -> list[str]:
        return [
            self.binary,
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height",
            "-of",
            "json",
            str(media_path),
        ]

    def probe_dimensions(self, media_path: Path) -> Tuple[int, int]:
        result = self.runner.run(self.build_command(media_path), timeout_s=self.timeout_s)
        if not result.ok:
            logger.error(
                "probe_failed",
                path=str(media_path),
                returncode=result.returncode,
                timed_out=result.timed_out,
                stderr=result.stderr.strip(),
            )
            code = "probe_timed_out" if result.timed_out else None
            raise ProbeError(
                f"ffprobe exited with code {result.returncode}",
                code=code,
                diagnostics=result.stderr.strip(),
            )
        return parse_stream_dimensions(result.stdout)

    def probe_aspect_ratio(self, media_path: Path) -> AspectRatio:
        width, height = self.probe_dimensions(media_path)
        aspect = classify_aspect_ratio(width, height)
        logger.info("probe_classified", path=str(media_path), width=width, height=height, aspect=aspect.value)
        return aspect


__all__ = [
    "AspectRatio",
    "MediaProber",
    "classify_aspect_ratio",
    "parse_stream_dimensions",
    "LANDSCAPE_RATIO",
    "PORTRAIT_RATIO",
]
