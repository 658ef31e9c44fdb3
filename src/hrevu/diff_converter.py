"""Turn parsed git diffs into line-addressable file views.

A diff arrives as a `unidiff.PatchSet`: one `PatchedFile` per delta, each
holding hunks of marked lines. The functions here classify those lines,
bucket them per path, and merge the staged and unstaged views of a working
tree into a single `FileSet`.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from unidiff import PatchedFile, PatchSet

from hrevu.models import FileEntry, FileStatus, Line, LineKind

FileSet = Dict[str, FileEntry]

# Bucket for deltas that carry no usable path, e.g. some binary changes.
BINARY_PATH = "binary"

DEV_NULL = "/dev/null"


class LineOrigin(str, Enum):
    """Origin markers a diff line can carry."""
    ADDITION = "+"
    ADD_EOF_NEWLINE = ">"
    DELETION = "-"
    DEL_EOF_NEWLINE = "<"
    CONTEXT = " "
    NO_NEWLINE_MARKER = "\\"

    @classmethod
    def from_marker(cls, marker: str) -> "LineOrigin":
        """Map a raw marker to an origin, treating unknown markers as context."""
        try:
            return cls(marker)
        except ValueError:
            return cls.CONTEXT


_ORIGIN_KINDS: Dict[LineOrigin, Optional[LineKind]] = {
    LineOrigin.ADDITION: LineKind.ADDED,
    LineOrigin.ADD_EOF_NEWLINE: LineKind.ADDED,
    LineOrigin.DELETION: LineKind.REMOVED,
    LineOrigin.DEL_EOF_NEWLINE: LineKind.REMOVED,
    LineOrigin.CONTEXT: None,
}


def _decode_payload(content: Union[str, bytes]) -> str:
    """Return the payload as text, or an empty string if it is not UTF-8."""
    if isinstance(content, bytes):
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError:
            return ""
    try:
        # Undecodable bytes survive git output decoding as lone surrogates.
        content.encode("utf-8")
    except UnicodeEncodeError:
        return ""
    return content


def classify_line(
    content: Union[str, bytes],
    origin: str,
    new_lineno: Optional[int],
    old_lineno: Optional[int],
) -> Optional[Line]:
    """Classify one raw diff line.

    Returns None when the line should be skipped: an empty payload, or the
    "\\ No newline at end of file" marker.

    Removed lines are numbered by their pre-image position and fall back to
    0 when git gives none; they never borrow the post-image number. Every
    other line is numbered by its post-image position.
    """
    line_origin = LineOrigin.from_marker(origin)
    if line_origin is LineOrigin.NO_NEWLINE_MARKER:
        return None

    text = _decode_payload(content).rstrip()
    if not text:
        return None

    kind = _ORIGIN_KINDS[line_origin]
    if kind is LineKind.REMOVED:
        number = old_lineno or 0
    else:
        number = new_lineno or 0

    return Line(number=number, content=text, kind=kind)


def _strip_prefix(name: Optional[str], prefix: str) -> Optional[str]:
    if not name or name == DEV_NULL:
        return None
    if name.startswith(prefix):
        return name[len(prefix):]
    return name


def delta_path(patched_file: PatchedFile) -> str:
    """Path a delta's lines are filed under.

    The post-image path wins; a deleted file falls back to its pre-image path
    and a delta with neither lands in the `binary` bucket.
    """
    return (
        _strip_prefix(patched_file.target_file, "b/")
        or _strip_prefix(patched_file.source_file, "a/")
        or BINARY_PATH
    )


def delta_status(patched_file: PatchedFile) -> FileStatus:
    if patched_file.is_added_file:
        return FileStatus.ADDED
    if patched_file.is_removed_file:
        return FileStatus.DELETED
    # Modifications, renames, copies and anything unrecognised.
    return FileStatus.MODIFIED


def diff_to_file_set(patch: PatchSet) -> FileSet:
    """Convert a parsed diff into one `FileEntry` per touched path."""
    files: FileSet = {}

    for patched_file in patch:
        path = delta_path(patched_file)
        files[path] = FileEntry(path=path, status=delta_status(patched_file))

    for patched_file in patch:
        entry = files[delta_path(patched_file)]
        for hunk in patched_file:
            for diff_line in hunk:
                line = classify_line(
                    diff_line.value,
                    diff_line.line_type,
                    diff_line.target_line_no,
                    diff_line.source_line_no,
                )
                if line is not None:
                    entry.lines.append(line)

    return files


def merge_file_sets(staged: FileSet, working: FileSet) -> FileSet:
    """Merge the staged and unstaged views of the same working tree.

    Paths present in both keep the staged lines first, followed by the
    working tree lines. Line numbers refer to different baselines, so the
    sequences are concatenated as-is. Neither input is modified.
    """
    merged: FileSet = {
        path: entry.model_copy(update={"lines": list(entry.lines)})
        for path, entry in staged.items()
    }

    for path, entry in working.items():
        existing = merged.get(path)
        if existing is None:
            merged[path] = entry.model_copy(update={"lines": list(entry.lines)})
        else:
            existing.lines.extend(entry.lines)

    return merged


def sorted_entries(files: FileSet) -> List[FileEntry]:
    """Entries ordered by path, as handed to callers."""
    return [files[path] for path in sorted(files)]


def enumerate_file_lines(
    content: str,
    kind: Optional[LineKind] = None,
    skip_blank: bool = False,
) -> List[Line]:
    """Number every line of a text, starting at 1.

    With `skip_blank`, blank lines are left out but keep their place in the
    numbering, matching what a diff of the same file would show.
    """
    lines = []
    for index, text in enumerate(content.splitlines(), start=1):
        text = text.rstrip()
        if skip_blank and not text:
            continue
        lines.append(Line(number=index, content=text, kind=kind))
    return lines


def file_entry_from_text(
    path: str,
    content: str,
    status: FileStatus,
    kind: Optional[LineKind] = None,
    skip_blank: bool = False,
) -> FileEntry:
    return FileEntry(
        path=path,
        status=status,
        lines=enumerate_file_lines(content, kind, skip_blank=skip_blank),
    )


def file_set_from_entries(entries: Iterable[FileEntry]) -> FileSet:
    return {entry.path: entry for entry in entries}
