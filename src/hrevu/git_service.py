import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from unidiff import PatchSet
from unidiff.errors import UnidiffParseError

from hrevu.diff_converter import (
    FileSet,
    diff_to_file_set,
    file_entry_from_text,
    file_set_from_entries,
    merge_file_sets,
)
from hrevu.errors import GitError
from hrevu.models import FileStatus, LineKind

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 3


class GitService:
    """Service for interacting with a git repository."""

    def __init__(
        self,
        repo_path: Optional[str | Path] = None,
        context_lines: int = DEFAULT_CONTEXT_LINES,
        include_untracked: bool = True,
    ) -> None:
        """Initialize with optional repository path (defaults to the working directory)."""
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self.context_lines = context_lines
        self.include_untracked = include_untracked

    # Repository queries

    def is_repository(self) -> bool:
        result = self._run_git_quiet(["git", "rev-parse", "--is-inside-work-tree"])
        return result is not None and result.strip() == "true"

    def get_toplevel(self) -> Path:
        """Root directory of the working tree."""
        return Path(self._run_git_command(["git", "rev-parse", "--show-toplevel"]).strip())

    def resolve_commit(self, revision: str) -> Optional[str]:
        """Return the full hash a revision names, or None if it names no commit."""
        if not revision or revision.startswith("-"):
            return None
        output = self._run_git_quiet(
            ["git", "rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"]
        )
        if output is None:
            return None
        return output.strip() or None

    def has_head(self) -> bool:
        return self.resolve_commit("HEAD") is not None

    # Diffs

    def get_commit_diff(self, commit: str) -> FileSet:
        """Diff a commit against its first parent (or the empty tree for a root commit)."""
        commit_hash = self.resolve_commit(commit)
        if commit_hash is None:
            raise GitError(f"Not a commit: {commit}")

        parents = self._run_git_command(
            ["git", "rev-list", "--parents", "-n", "1", commit_hash]
        ).split()[1:]
        base = parents[0] if parents else self._empty_tree()

        return diff_to_file_set(self._diff([base, commit_hash]))

    def get_working_tree_diff(self) -> FileSet:
        """Staged and unstaged changes merged into one view.

        Without a HEAD commit every file in the repository is new, so each is
        listed as added with its whole content.
        """
        if not self.has_head():
            return self._get_unborn_files()

        files = merge_file_sets(self.get_staged_diff(), self.get_unstaged_diff())

        if self.include_untracked:
            untracked = self._read_as_added(self.list_untracked_files())
            files = merge_file_sets(files, untracked)

        return files

    def get_staged_diff(self) -> FileSet:
        return diff_to_file_set(self._diff(["--cached", "HEAD"]))

    def get_unstaged_diff(self) -> FileSet:
        return diff_to_file_set(self._diff([]))

    def list_untracked_files(self) -> List[str]:
        """Untracked files relative to the repository root, honouring .gitignore."""
        output = self._run_git_command(
            ["git", "ls-files", "--others", "--exclude-standard", "--full-name", "-z"],
            cwd=self.get_toplevel(),
        )
        return [name for name in output.split("\0") if name]

    def list_all_files(self) -> List[str]:
        """Tracked and untracked files relative to the repository root."""
        output = self._run_git_command(
            ["git", "ls-files", "--cached", "--others", "--exclude-standard", "--full-name", "-z"],
            cwd=self.get_toplevel(),
        )
        return sorted({name for name in output.split("\0") if name})

    def _get_unborn_files(self) -> FileSet:
        return self._read_as_added(self.list_all_files())

    def _read_as_added(self, paths: Sequence[str]) -> FileSet:
        """Read whole files as added entries, skipping any that cannot be read."""
        root = self.get_toplevel()
        entries = []
        for path in paths:
            try:
                content = (root / path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable file %s: %s", path, e)
                continue
            entries.append(
                file_entry_from_text(
                    path, content, FileStatus.ADDED, LineKind.ADDED, skip_blank=True
                )
            )
        return file_set_from_entries(entries)

    def _empty_tree(self) -> str:
        return self._run_git_command(
            ["git", "hash-object", "-t", "tree", "--stdin"], input=""
        ).strip()

    def _diff(self, args: List[str]) -> PatchSet:
        cmd = [
            "git",
            "-c",
            "core.quotepath=false",
            "diff",
            "--no-color",
            "--no-ext-diff",
            "--no-renames",
            f"-U{self.context_lines}",
            "--src-prefix=a/",
            "--dst-prefix=b/",
            *args,
        ]
        output = self._run_git_command(cmd)
        try:
            return PatchSet.from_string(output)
        except UnidiffParseError as e:
            raise GitError(f"Could not parse diff output of {' '.join(cmd)}: {e}", cmd) from e

    # Process helpers

    def _run_git_command(
        self,
        cmd: List[str],
        cwd: Optional[Path] = None,
        input: Optional[str] = None,
    ) -> str:
        """Run a git command and return output."""
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd or self.repo_path,
                input=input.encode("utf-8") if input is not None else None,
                capture_output=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", errors="replace").strip()
            raise GitError(f"Git command failed: {' '.join(cmd)}: {stderr}", cmd, stderr) from e
        except OSError as e:
            raise GitError(f"Could not run git: {e}", cmd) from e
        return result.stdout.decode("utf-8", errors="surrogateescape")

    def _run_git_quiet(self, cmd: List[str]) -> Optional[str]:
        """Run a git command, returning None instead of raising on failure."""
        try:
            return self._run_git_command(cmd)
        except GitError:
            return None
