"""Unit tests for the top-level CLI entry points.

These tests validate help output, the version callback, and the ``chunks``
and ``locate`` commands against small transcript files.
"""

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from listening_lab import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def logging_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, bool]]:
    """Record ``configure_logging`` calls instead of touching the root logger."""
    calls: list[dict[str, bool]] = []
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: calls.append(kwargs))
    return calls


@pytest.fixture
def transcript(tmp_path: Path) -> Path:
    """Transcript file matching the 58/64 boundary example."""
    path = tmp_path / "talk.json"
    path.write_text(
        json.dumps(
            [
                {"start": 0, "end": 58, "text": "First part."},
                {"start": 58, "end": 64, "text": "Short bridge."},
                {"start": 64, "end": 121, "text": "Second part."},
            ]
        )
    )
    return path


def test_version_callback() -> None:
    """Ensure ``--version`` callback exits the process cleanly."""
    with pytest.raises(typer.Exit):
        cli.version_callback(True)


def test_main_help() -> None:
    """Invoking the app without args should print usage and exit 0."""
    result = runner.invoke(cli.app, [])
    assert result.exit_code == 0
    assert "Usage" in result.stdout


def test_chunks_json(transcript: Path, logging_calls: list[dict[str, bool]]) -> None:
    """``chunks --json`` prints the chunk plan."""
    result = runner.invoke(cli.app, ["chunks", str(transcript), "--json", "--quiet"])
    assert result.exit_code == 0
    assert logging_calls == [{"verbose": False, "quiet": True}]
    plan = json.loads(result.stdout)
    assert [(chunk["start"], chunk["end"]) for chunk in plan] == [(0.0, 58.0), (58.0, 121.0)]
    assert plan[1]["label_start"] == "00:58"


def test_chunks_table(transcript: Path) -> None:
    """The default output is a Rich table."""
    result = runner.invoke(cli.app, ["chunks", str(transcript), "--duration", "121", "-q"])
    assert result.exit_code == 0
    assert "Chunks: talk.json" in result.stdout
    assert "00:58" in result.stdout


def test_chunks_rejects_invalid_band(transcript: Path) -> None:
    """An unordered band exits with code 1."""
    result = runner.invoke(cli.app, ["chunks", str(transcript), "--min", "90", "-q"])
    assert result.exit_code == 1


def test_locate(transcript: Path) -> None:
    """``locate`` reports the chunk and segment at a position."""
    result = runner.invoke(cli.app, ["locate", str(transcript), "60", "-q"])
    assert result.exit_code == 0
    assert "2/2" in result.stdout
    assert "Short bridge." in result.stdout


def test_invalid_transcript_exits_with_error(tmp_path: Path) -> None:
    """Unparseable transcripts exit with code 1."""
    bad = tmp_path / "bad.json"
    bad.write_text("{nope")
    result = runner.invoke(cli.app, ["locate", str(bad), "1"])
    assert result.exit_code == 1


def test_undecodable_transcript_exits_with_error(tmp_path: Path) -> None:
    """Files that are not UTF-8 are reported like any other load error."""
    bad = tmp_path / "bad.json"
    bad.write_bytes(b"\xff\xfe")
    result = runner.invoke(cli.app, ["chunks", str(bad)])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
