import asyncio
import logging
from typing import Optional

from hrevu.errors import CompletionError
from hrevu.models import ReviewSession

logger = logging.getLogger(__name__)

# Time for the completion response to reach the browser before the caller
# reads the final session and the server is torn down.
DEFAULT_GRACE_DELAY = 0.1


class CompletionSignal:
    """One-shot hand-off of the final review session to whoever is waiting.

    The first published snapshot is kept; later ones are discarded. Every
    waiter, however many, is released by that first publish.
    """

    def __init__(self, grace_delay: float = DEFAULT_GRACE_DELAY) -> None:
        self.grace_delay = grace_delay
        self._event = asyncio.Event()
        self._snapshot: Optional[ReviewSession] = None

    @property
    def is_completed(self) -> bool:
        return self._snapshot is not None

    def publish(self, snapshot: ReviewSession) -> bool:
        """Store the final session and release all waiters.

        Returns False, leaving the stored session untouched, if a session was
        already published.
        """
        if self._snapshot is not None:
            logger.debug("Review already completed, discarding later snapshot")
            return False

        self._snapshot = snapshot
        self._event.set()
        return True

    def final(self) -> ReviewSession:
        """The published session. Fails if the review was never completed."""
        if self._snapshot is None:
            raise CompletionError("Final data not available")
        return self._snapshot

    async def wait(self) -> ReviewSession:
        """Block until the review is completed, then return the final session."""
        await self._event.wait()
        if self.grace_delay > 0:
            await asyncio.sleep(self.grace_delay)
        return self.final()
