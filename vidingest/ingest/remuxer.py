from __future__ import annotations

from pathlib import Path

from vidingest.core.logging import get_logger

from .errors import RemuxError
from .runner import CommandRunner

logger = get_logger(component="stream_remuxer")

PROCESSED_SUFFIX = ".processed"


def processed_path_for(input_path: Path) -> Path:
    return input_path.with_name(input_path.name + PROCESSED_SUFFIX)


class StreamRemuxer:
    """Rewrites an MP4 with its moov atom at the front, copying streams as-is."""

    def __init__(self, runner: CommandRunner, *, binary: str = "ffmpeg", timeout_s: float | None = None):
        self.runner = runner
        self.binary = binary
        self.timeout_s = timeout_s

    def build_command(self, input_path: Path, output_path: Path) -> list[str]:
        return [
            self.binary,
            "-nostdin",
            "-v",
            "error",
            "-y",
            "-i",
            str(input_path),
            "-movflags",
            "faststart",
            "-map_metadata",
            "0",
            "-codec",
            "copy",
            "-f",
            "mp4",
            str(output_path),
        ]

    def remux_for_faststart(self, input_path: Path) -> Path:
        output_path = processed_path_for(input_path)
        result = self.runner.run(self.build_command(input_path, output_path), timeout_s=self.timeout_s)
        if not result.ok:
            logger.error(
                "remux_failed",
                path=str(input_path),
                returncode=result.returncode,
                timed_out=result.timed_out,
                stderr=result.stderr.strip(),
            )
            raise RemuxError(
                f"Command failed with code {result.returncode}: {result.stderr.strip()}",
                code="remux_timed_out" if result.timed_out else None,
                diagnostics=result.stderr.strip(),
                returncode=result.returncode,
            )

        # ffmpeg can exit 0 without producing output for some inputs.
        if not output_path.exists() or output_path.stat().st_size == 0:
            logger.error("remux_output_missing", path=str(output_path))
            raise RemuxError(
                "Processed file was not created",
                code="remux_output_missing",
                diagnostics=result.stderr.strip() or None,
                returncode=result.returncode,
            )

        logger.info("remux_completed", path=str(output_path), size_bytes=output_path.stat().st_size)
        return output_path


__all__ = ["StreamRemuxer", "processed_path_for", "PROCESSED_SUFFIX"]
