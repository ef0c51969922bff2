from __future__ import annotations

from pathlib import Path

import pytest

from tests.conftest import FakeRunner
from vidingest import cli
from vidingest.ingest.runner import CommandResult


def test_probe_prints_classification(tmp_path: Path, capsys):
    media = tmp_path / "clip.mp4"
    media.write_bytes(b"data")

    cli.main(["probe", "--file", str(media)], runner=FakeRunner(width=1080, height=1920))

    out = capsys.readouterr().out
    assert '"aspect": "portrait"' in out
    assert '"width": 1080' in out


def test_probe_failure_exits_with_code_3(tmp_path: Path):
    media = tmp_path / "clip.mp4"
    media.write_bytes(b"data")
    runner = FakeRunner(probe_result=CommandResult(1, "", "moov atom not found"))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["probe", "--file", str(media)], runner=runner)
    assert excinfo.value.code == 3


def test_missing_file_exits_with_code_2(tmp_path: Path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["remux", "--file", str(tmp_path / "missing.mp4")], runner=FakeRunner())
    assert excinfo.value.code == 2


def test_remux_writes_processed_copy(tmp_path: Path):
    media = tmp_path / "clip.mp4"
    media.write_bytes(b"data")

    cli.main(["remux", "--file", str(media)], runner=FakeRunner())

    assert (tmp_path / "clip.mp4.processed").read_bytes() == b"data"


def test_check_fails_when_a_tool_is_missing():
    runner = FakeRunner(probe_result=CommandResult(127, "", "ffprobe: executable not found"))
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--check"], runner=runner)
    assert excinfo.value.code == 1


def test_check_passes_with_both_tools():
    cli.main(["--check"], runner=FakeRunner())
