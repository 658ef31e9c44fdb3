import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from hrevu import __version__
from hrevu.api.router import create_api_router
from hrevu.completion import CompletionSignal
from hrevu.config import settings
from hrevu.errors import GitError, ReviewCancelledError
from hrevu.file_watcher import ChangeTracker, FileWatcher
from hrevu.git_service import GitService
from hrevu.models import CommitDiff, FileContent, ReviewSession, WorkingTreeDiff
from hrevu.review_store import ReviewStore
from hrevu.utils import get_random_port

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


def create_app(
    store: ReviewStore,
    git_service: GitService,
    tracker: ChangeTracker,
    static_dir: Optional[Path] = None,
    long_poll_timeout: Optional[float] = None,
) -> FastAPI:
    """Assemble the FastAPI app serving the review page and its API."""
    app = FastAPI(title="hrevu", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    assets_dir = static_dir or settings.static_dir or STATIC_DIR
    app.mount("/static", StaticFiles(directory=str(assets_dir)), name="static")

    app.include_router(
        create_api_router(
            store,
            git_service,
            tracker,
            long_poll_timeout=(
                settings.long_poll_timeout if long_poll_timeout is None else long_poll_timeout
            ),
        )
    )

    @app.get("/")
    async def read_index() -> FileResponse:
        """Serve the review page."""
        review_path = assets_dir / "templates" / "review.html"
        if not review_path.exists():
            raise HTTPException(status_code=500, detail="Template not found")
        return FileResponse(review_path)

    return app


class ReviewServer:
    """Runs one review: the HTTP server, its session store and the completion hand-off.

    `run()` starts serving inside the current event loop and returns the
    port; `wait_for_completion()` blocks until the human completes the review
    in the browser.
    """

    def __init__(
        self,
        subject: Union[CommitDiff, FileContent, WorkingTreeDiff],
        git_service: Optional[GitService] = None,
        host: Optional[str] = None,
        grace_delay: Optional[float] = None,
        watch_files: Optional[bool] = None,
        static_dir: Optional[Path] = None,
    ) -> None:
        self.subject = subject
        self.git_service = git_service or GitService(
            context_lines=settings.diff_context_lines,
            include_untracked=settings.include_untracked,
        )
        self.host = host or settings.host
        self.watch_files = settings.watch_files if watch_files is None else watch_files

        self.completion = CompletionSignal(
            settings.completion_grace_seconds if grace_delay is None else grace_delay
        )
        self.store = ReviewStore(ReviewSession.start(subject), self.completion)
        self.tracker = ChangeTracker()
        self.app = create_app(self.store, self.git_service, self.tracker, static_dir)

        self.port: Optional[int] = None
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None
        self._watcher: Optional[FileWatcher] = None

    @property
    def url(self) -> str:
        if self.port is None:
            raise RuntimeError("Review server is not running")
        host = "localhost" if self.host in ("127.0.0.1", "0.0.0.0", "") else self.host
        return f"http://{host}:{self.port}"

    async def run(self, port: int = 0) -> int:
        """Start serving on `port` (0 picks a free one) and return the actual port."""
        if self._task is not None and self.port is not None:
            return self.port

        sock, actual_port = get_random_port(self.host, port)
        config = uvicorn.Config(
            self.app,
            log_level="info" if settings.debug else "warning",
            access_log=settings.debug,
        )
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]))

        while not self._server.started:
            if self._task.done():
                sock.close()
                error = self._task.exception()
                raise ReviewCancelledError("Review server failed to start") from error
            await asyncio.sleep(0.01)

        self.port = actual_port
        logger.info("Server running on port %d", actual_port)

        if self.watch_files:
            self._start_watcher()

        return actual_port

    async def wait_for_completion(self) -> ReviewSession:
        """Wait until the review is completed and return the final session.

        Raises ReviewCancelledError if the server stops first, e.g. after an
        interrupt.
        """
        waiter = asyncio.ensure_future(self.completion.wait())
        watched = {waiter}
        if self._task is not None:
            watched.add(self._task)

        try:
            done, _ = await asyncio.wait(watched, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            waiter.cancel()
            raise

        if waiter in done:
            return waiter.result()

        waiter.cancel()
        raise ReviewCancelledError("Review server stopped before the review was completed")

    async def shutdown(self) -> None:
        """Stop the file watcher and the HTTP server."""
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

        if self._server is not None and self._task is not None:
            self._server.should_exit = True
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Review server exited with an error: %s", e)
        self._server = None
        self._task = None

    def _watch_directory(self) -> Path:
        if isinstance(self.subject, FileContent):
            return Path(self.subject.path).resolve().parent
        try:
            return self.git_service.get_toplevel()
        except GitError:
            return self.git_service.repo_path

    def _start_watcher(self) -> None:
        self._watcher = FileWatcher(self.tracker, asyncio.get_running_loop())
        self._watcher.start_watching(self._watch_directory())
