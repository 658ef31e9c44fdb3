"""Response models for the review API."""

from typing import List

from pydantic import BaseModel

from hrevu.models import Comment, FileEntry, ReviewSubject


class DataResponse(BaseModel):
    """Everything the review page needs to render."""
    subject: ReviewSubject
    title: str
    files: List[FileEntry]
    comments: List[Comment]


class CompletionResponse(BaseModel):
    message: str
    comment_count: int


class ChangesResponse(BaseModel):
    """Current version of the watched files."""
    version: int
