import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CommitDiff(BaseModel):
    """Review the changes introduced by one commit."""
    model_config = ConfigDict(frozen=True)

    type: Literal["commit_diff"] = "commit_diff"
    commit: str

    def display_title(self) -> str:
        return f"Commit: {self.commit}"


class FileContent(BaseModel):
    """Review the full content of a single file."""
    model_config = ConfigDict(frozen=True)

    type: Literal["file_content"] = "file_content"
    path: str

    def display_title(self) -> str:
        return f"File: {self.path}"


class WorkingTreeDiff(BaseModel):
    """Review staged and unstaged changes against HEAD."""
    model_config = ConfigDict(frozen=True)

    type: Literal["working_tree_diff"] = "working_tree_diff"

    def display_title(self) -> str:
        return "Current Changes"


ReviewSubject = Annotated[
    Union[CommitDiff, FileContent, WorkingTreeDiff],
    Field(discriminator="type"),
]


class LineKind(str, Enum):
    """Change kind of a line in the file view."""
    ADDED = "added"
    REMOVED = "removed"


class FileStatus(str, Enum):
    """How a file was touched by the change under review."""
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    VIEWED = "view"


class Line(BaseModel):
    """A single line of the file view.

    `number` is the pre-image position for removed lines and the post-image
    position otherwise. `kind` is None for context lines and plain file views.
    """
    model_config = ConfigDict(populate_by_name=True)

    number: int = Field(ge=0)
    content: str
    kind: Optional[LineKind] = Field(default=None, alias="type")


class FileEntry(BaseModel):
    """All lines shown for one path."""
    path: str
    status: FileStatus
    lines: List[Line] = Field(default_factory=list)


class Comment(BaseModel):
    """A review comment on a line, a file, or the whole review."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    file: Optional[str] = None
    line: Optional[int] = Field(default=None, ge=0)
    text: str
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_global(self) -> bool:
        return self.file is None and self.line is None


class ReviewStatus(str, Enum):
    """Lifecycle of a review session."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ReviewSession(BaseModel):
    """The state of the one review held by a running server."""
    subject: ReviewSubject
    display_title: str
    comments: List[Comment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    status: ReviewStatus = ReviewStatus.IN_PROGRESS

    @classmethod
    def start(cls, subject: Union[CommitDiff, FileContent, WorkingTreeDiff]) -> "ReviewSession":
        """Create a fresh in-progress session for a subject."""
        return cls(subject=subject, display_title=subject.display_title())


class CommentRequest(BaseModel):
    """Request to create a comment."""
    file: Optional[str] = None
    line: Optional[int] = Field(default=None, ge=0)
    text: str


class CommentUpdateRequest(BaseModel):
    """Request to update a comment. A missing text leaves it unchanged."""
    text: Optional[str] = None
