from typing import Optional, Union

from mcp.server.fastmcp import FastMCP

from hrevu.errors import HrevuError, ReviewCancelledError
from hrevu.input_resolver import resolve_subject
from hrevu.server import ReviewServer

# MCP server and the review it is currently running
mcp = FastMCP("hrevu-mcp")
current_review: Optional[ReviewServer] = None


@mcp.tool()
async def start_review(target: str = "diff") -> str:
    """Start a human review session in the browser. After starting it, call
    await_review to block until the human completes the review.

    Parameters:
    - target: a commit (e.g. 'HEAD', 'abc123'), a file path, or 'diff' for
      the current staged and unstaged changes (the default)

    Starting a new review stops the previous one.
    """
    global current_review

    try:
        subject = resolve_subject(target)
    except HrevuError as e:
        return str(e)

    if current_review is not None:
        await current_review.shutdown()

    current_review = ReviewServer(subject)
    await current_review.run()
    return f"Review session for {subject.display_title()} started at {current_review.url}."


@mcp.tool()
async def await_review() -> Union[dict, str]:
    """Wait for the human to complete the review.

    Blocks until the review is completed in the browser and returns the
    final session, including every comment with its file and line.
    """
    global current_review

    if current_review is None:
        return "No review in progress. Call start_review first."

    review = current_review
    try:
        session = await review.wait_for_completion()
    except ReviewCancelledError as e:
        return str(e)
    finally:
        await review.shutdown()
        if current_review is review:
            current_review = None

    return session.model_dump(mode="json", by_alias=True, exclude_none=True)


def main() -> None:
    """Entry point for the stdio MCP server."""
    mcp.run("stdio")


if __name__ == "__main__":
    main()
