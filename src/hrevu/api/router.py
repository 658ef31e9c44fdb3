import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Path, Query, Response
from fastapi.concurrency import run_in_threadpool

from hrevu.api.responses import ChangesResponse, CompletionResponse, DataResponse
from hrevu.errors import CommentNotFoundError, GitError
from hrevu.file_view import load_file_view
from hrevu.file_watcher import ChangeTracker
from hrevu.git_service import GitService
from hrevu.models import Comment, CommentRequest, CommentUpdateRequest
from hrevu.review_store import ReviewStore

logger = logging.getLogger(__name__)


def create_api_router(
    store: ReviewStore,
    git_service: GitService,
    tracker: ChangeTracker,
    long_poll_timeout: float = 25.0,
) -> APIRouter:
    """Create the router serving one review session."""
    router = APIRouter(prefix="/api")

    @router.get("/data", response_model=DataResponse, response_model_exclude_none=True)
    async def get_data() -> DataResponse:
        """Get the subject, its regenerated file view and the comments."""
        session = await store.read()

        # The diff is rebuilt outside the store lock, in the thread pool.
        try:
            files = await run_in_threadpool(load_file_view, session.subject, git_service)
        except (GitError, OSError) as e:
            logger.error("Failed to load %s: %s", session.display_title, e)
            raise HTTPException(status_code=500, detail=str(e))

        return DataResponse(
            subject=session.subject,
            title=session.display_title,
            files=files,
            comments=session.comments,
        )

    @router.post("/comments", response_model_exclude_none=True)
    async def add_comment(request: CommentRequest) -> Comment:
        """Add a line, file or global comment."""
        return await store.append(request.text, file=request.file, line=request.line)

    @router.put("/comments/{comment_id}", response_model_exclude_none=True)
    async def update_comment(
        request: CommentUpdateRequest, comment_id: str = Path(...)
    ) -> Comment:
        """Update a comment's text."""
        try:
            return await store.update(comment_id, request.text)
        except CommentNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @router.delete("/comments/{comment_id}", status_code=204)
    async def delete_comment(comment_id: str = Path(...)) -> Response:
        """Delete a comment."""
        try:
            await store.remove(comment_id)
        except CommentNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return Response(status_code=204)

    @router.post("/complete")
    async def complete_review() -> CompletionResponse:
        """Finish the review and hand the comments back to the caller."""
        result = await store.complete()
        return CompletionResponse(
            message=result.message, comment_count=result.comment_count
        )

    @router.get("/changes")
    async def get_changes(
        since: Optional[int] = Query(
            None, description="Version the client has already seen"
        ),
        timeout: Optional[float] = Query(
            None, description="Long-polling timeout in seconds", ge=0, le=60
        ),
    ) -> ChangesResponse:
        """Long-poll for changes to the files under review.

        Returns as soon as the version differs from `since`, or after the
        timeout with the unchanged version.
        """
        wait = long_poll_timeout if timeout is None else timeout
        version = await tracker.wait_for_change(since, timeout=wait)
        return ChangesResponse(version=version)

    return router
