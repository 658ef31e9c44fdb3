"""Pytest configuration and fixtures."""

import subprocess
from pathlib import Path
from typing import Iterable

import pytest


def git(repo: Path, *args: str) -> str:
    """Run a git command in `repo` and return its output."""
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout


def write_lines(path: Path, lines: Iterable[str]) -> None:
    path.write_text("".join(f"{line}\n" for line in lines))


def commit_all(repo: Path, message: str) -> str:
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD").strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """An empty git repository with an identity configured."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.email", "reviewer@example.com")
    git(repo, "config", "user.name", "Reviewer")
    git(repo, "config", "commit.gpgsign", "false")
    return repo


@pytest.fixture
def git_repo_with_commits(git_repo: Path) -> Path:
    """A repository with two commits.

    1. adds file1.txt (3 lines)
    2. appends a line to file1.txt and adds file2.txt
    """
    write_lines(git_repo / "file1.txt", ["line 1", "line 2", "line 3"])
    commit_all(git_repo, "Initial commit")

    write_lines(git_repo / "file1.txt", ["line 1", "line 2", "line 3", "line 4"])
    write_lines(git_repo / "file2.txt", ["hello", "world"])
    commit_all(git_repo, "Second commit")
    return git_repo
