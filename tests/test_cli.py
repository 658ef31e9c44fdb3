"""Tests for the command-line entry point."""

import json
from pathlib import Path

import pytest

from hrevu import cli
from hrevu.errors import ReviewCancelledError
from hrevu.models import Comment, FileContent, ReviewSession, ReviewStatus

from conftest import write_lines


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)


@pytest.fixture
def notes_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    write_lines(tmp_path / "notes.txt", ["alpha", "beta", "gamma"])
    return tmp_path


def fake_review(session_text: str = "nice"):
    async def run_review(subject, git_service, port=0, open_browser=True):
        session = ReviewSession.start(subject)
        session.comments.append(Comment(file=getattr(subject, "path", None), line=2, text=session_text))
        session.status = ReviewStatus.COMPLETED
        return session

    return run_review


def test_parser_defaults() -> None:
    """Test the parser defaults."""
    args = cli.build_parser().parse_args(["diff"])

    assert args.input == "diff"
    assert args.port == 0
    assert not args.json
    assert not args.no_browser


def test_unresolvable_input_exits_non_zero(notes_dir: Path, capsys: pytest.CaptureFixture) -> None:
    """An unknown target exits with 1 and an error on stderr."""
    assert cli.main(["abc123"]) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Unable to parse input: abc123" in captured.err


def test_json_output(notes_dir: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    """--json prints the final session to stdout."""
    monkeypatch.setattr(cli, "run_review", fake_review("looks right"))

    assert cli.main(["notes.txt", "--json", "--no-browser"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["subject"] == {"type": "file_content", "path": "notes.txt"}
    assert data["status"] == "completed"
    assert data["comments"][0]["text"] == "looks right"


def test_summary_output_includes_context(
    notes_dir: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
) -> None:
    """The summary shows comments next to their source lines."""
    monkeypatch.setattr(cli, "run_review", fake_review("check this"))

    assert cli.main(["notes.txt", "--no-browser"]) == 0

    out = capsys.readouterr().out
    assert "Review Summary" in out
    assert "check this" in out
    assert "alpha" in out
    assert "beta" in out


def test_cancelled_review(notes_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A cancelled review exits with 130."""
    async def cancelled(*args, **kwargs):
        raise ReviewCancelledError("stopped")

    monkeypatch.setattr(cli, "run_review", cancelled)

    assert cli.main(["notes.txt", "--no-browser"]) == 130


def test_collect_file_lines_tolerates_missing_files(tmp_path: Path) -> None:
    """Missing files give an empty context instead of an error."""
    subject = FileContent(path=str(tmp_path / "missing.txt"))

    assert cli.collect_file_lines(subject, cli.GitService(tmp_path)) == {}
