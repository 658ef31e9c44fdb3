import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from hrevu.completion import CompletionSignal
from hrevu.errors import CommentNotFoundError
from hrevu.models import Comment, ReviewSession, ReviewStatus

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Asyncio reader/writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers block new readers so a stream of reads cannot
    starve a mutation.
    """

    def __init__(self) -> None:
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def write_locked(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(
                lambda: not self._writer and not self._waiting_writers
            )
            self._readers += 1
        try:
            yield
        finally:
            # Count drops before any await; a cancelled release must not leak a reader.
            self._readers -= 1
            if not self._readers:
                await asyncio.shield(self._notify_all())

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._condition:
            self._waiting_writers += 1
            try:
                await self._condition.wait_for(
                    lambda: not self._writer and not self._readers
                )
            finally:
                self._waiting_writers -= 1
                # Readers held back by this writer may go if it was cancelled.
                self._condition.notify_all()
            self._writer = True
        try:
            yield
        finally:
            self._writer = False
            await asyncio.shield(self._notify_all())

    async def _notify_all(self) -> None:
        async with self._condition:
            self._condition.notify_all()


@dataclass
class CompletionResult:
    message: str
    comment_count: int


class ReviewStore:
    """Owns the review session and serialises access to it.

    Reads hand out deep copies, so callers never observe a half-applied
    mutation and cannot mutate the session behind the lock.
    """

    def __init__(self, session: ReviewSession, completion: CompletionSignal) -> None:
        self._session = session
        self._lock = ReadWriteLock()
        self.completion = completion

    async def read(self) -> ReviewSession:
        """Consistent snapshot of the whole session."""
        async with self._lock.read():
            return self._session.model_copy(deep=True)

    async def append(
        self,
        text: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
    ) -> Comment:
        """Add a comment with a fresh id and timestamp."""
        comment = Comment(file=file, line=line, text=text)
        async with self._lock.write():
            self._session.comments.append(comment)

        logger.info("Added comment: %s", comment.id)
        return comment.model_copy()

    async def update(self, comment_id: str, text: Optional[str] = None) -> Comment:
        """Replace a comment's text. A None text leaves the comment as it is."""
        async with self._lock.write():
            comment = self._find(comment_id)
            if text is not None:
                comment.text = text
            updated = comment.model_copy()

        logger.info("Updated comment: %s", comment_id)
        return updated

    async def remove(self, comment_id: str) -> None:
        async with self._lock.write():
            comment = self._find(comment_id)
            self._session.comments.remove(comment)

        logger.info("Deleted comment: %s", comment_id)

    async def complete(self) -> CompletionResult:
        """Mark the review completed and publish the final session.

        Calling it again keeps the session completed and reports the live
        comment count, but waiters only ever see the first published session.
        """
        async with self._lock.write():
            self._session.status = ReviewStatus.COMPLETED
            first = self.completion.publish(self._session.model_copy(deep=True))
            count = len(self._session.comments)

        if first:
            logger.info("Review completed with %d comment(s)", count)
        return CompletionResult(message="Review completed", comment_count=count)

    def _find(self, comment_id: str) -> Comment:
        for comment in self._session.comments:
            if comment.id == comment_id:
                return comment
        logger.warning("Comment not found: %s", comment_id)
        raise CommentNotFoundError(comment_id)
