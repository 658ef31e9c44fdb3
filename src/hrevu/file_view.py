"""Regenerate the file view of a review subject from the live repository."""

from pathlib import Path
from typing import List, Union

from hrevu.diff_converter import file_entry_from_text, sorted_entries
from hrevu.git_service import GitService
from hrevu.models import CommitDiff, FileContent, FileEntry, FileStatus, WorkingTreeDiff


def read_file_entry(path: str) -> FileEntry:
    """A plain file shown in full: status `view`, no line kinds."""
    content = Path(path).read_text(encoding="utf-8", errors="replace")
    return file_entry_from_text(path, content, FileStatus.VIEWED)


def load_file_view(
    subject: Union[CommitDiff, FileContent, WorkingTreeDiff],
    git_service: GitService,
) -> List[FileEntry]:
    """Build the sorted file view for a subject.

    Nothing is cached; every call reads the repository or file again.
    Raises `GitError` or `OSError` when the source cannot be read.
    """
    if isinstance(subject, CommitDiff):
        return sorted_entries(git_service.get_commit_diff(subject.commit))
    if isinstance(subject, FileContent):
        return [read_file_entry(subject.path)]
    return sorted_entries(git_service.get_working_tree_diff())
