from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from .core.config import get_settings
from .ingest.errors import ProbeError, RemuxError
from .ingest.prober import MediaProber, classify_aspect_ratio
from .ingest.remuxer import StreamRemuxer
from .ingest.runner import CommandRunner, SubprocessRunner

console = Console()


def main(argv: Optional[list[str]] = None, *, runner: CommandRunner | None = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
        runner: Command runner used for ffmpeg/ffprobe, mainly for tests.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    args.runner = runner or SubprocessRunner()

    if getattr(args, "check", False):
        _run_environment_check(args.runner)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="vidingest media pipeline developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe dependencies")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Run ffprobe and print dimensions and aspect classification")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    probe_parser.set_defaults(func=_cmd_probe)

    remux_parser = subparsers.add_parser("remux", help="Write a faststart copy next to the source file")
    remux_parser.add_argument("--file", required=True, help="Path to the source media file")
    remux_parser.set_defaults(func=_cmd_remux)
    return parser


def _resolve_media(raw: str) -> Path:
    media_path = Path(raw).expanduser().resolve()
    if not media_path.exists():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)
    return media_path


def _cmd_probe(args: argparse.Namespace) -> None:
    """Print the probed dimensions and aspect classification as JSON.

    Args:
        args: The command-line arguments.
    """
    settings = get_settings()
    media_path = _resolve_media(args.file)
    prober = MediaProber(args.runner, binary=settings.ffprobe_binary, timeout_s=settings.probe_timeout_s)
    try:
        width, height = prober.probe_dimensions(media_path)
        aspect = classify_aspect_ratio(width, height)
    except ProbeError as exc:
        console.print(f"[red]ffprobe failed:[/] {exc.diagnostics or exc.message}")
        sys.exit(3)
    console.print_json(data={"file": str(media_path), "width": width, "height": height, "aspect": aspect.value})


def _cmd_remux(args: argparse.Namespace) -> None:
    settings = get_settings()
    media_path = _resolve_media(args.file)
    remuxer = StreamRemuxer(args.runner, binary=settings.ffmpeg_binary, timeout_s=settings.remux_timeout_s)
    try:
        output = remuxer.remux_for_faststart(media_path)
    except RemuxError as exc:
        console.print(f"[red]ffmpeg failed:[/] {exc.diagnostics or exc.message}")
        sys.exit(3)
    console.print(f"[green]Faststart copy written to {output}[/]")


def _run_environment_check(runner: CommandRunner) -> None:
    """Check for the presence of required external dependencies."""
    settings = get_settings()
    checks = {
        "ffmpeg": [settings.ffmpeg_binary, "-version"],
        "ffprobe": [settings.ffprobe_binary, "-version"],
    }
    results = {label: runner.run(cmd, timeout_s=10).ok for label, cmd in checks.items()}

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg to enable uploads.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
