"""Exceptions raised by hrevu."""

from typing import Sequence


class HrevuError(Exception):
    """Base class for all hrevu errors."""


class UnresolvableInputError(HrevuError):
    """The review target is not `diff`, an existing path or a commit."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Unable to parse input: {value}. "
            "Please provide: commit hash, file path, or 'diff'"
        )


class GitError(HrevuError):
    """A git command failed or the repository could not be read."""

    def __init__(self, message: str, command: Sequence[str] = (), stderr: str = "") -> None:
        self.command = list(command)
        self.stderr = stderr
        super().__init__(message)


class CommentNotFoundError(HrevuError):
    """No comment with the given id exists in the session."""

    def __init__(self, comment_id: str) -> None:
        self.comment_id = comment_id
        super().__init__(f"Comment not found: {comment_id}")


class CompletionError(HrevuError):
    """The final session was requested before the review was completed."""


class ReviewCancelledError(HrevuError):
    """The review server stopped before the review was completed."""
