import argparse
import asyncio
import logging
import sys
import webbrowser
from typing import Optional, Sequence, Union

from rich.console import Console
from rich.markup import escape

from hrevu import __version__
from hrevu.config import settings
from hrevu.errors import GitError, HrevuError, ReviewCancelledError
from hrevu.file_view import load_file_view
from hrevu.git_service import GitService
from hrevu.input_resolver import resolve_subject
from hrevu.models import CommitDiff, FileContent, ReviewSession, WorkingTreeDiff
from hrevu.output import FileLines, extract_file_lines, print_json, print_summary
from hrevu.server import ReviewServer
from hrevu.utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Status messages go to stderr so --json output stays parseable.
status_console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hrevu",
        description="Human review of a commit, the working tree or a file in the browser.",
    )
    parser.add_argument(
        "input",
        metavar="INPUT",
        help='commit hash, file path, or "diff" for current changes',
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=0,
        help="port for the web server (default: random available port)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="output results in JSON format",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="do not open the review page automatically",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def open_in_browser(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning("Failed to open browser: %s", e)
        opened = False

    if opened:
        status_console.print("  [green]Browser opened automatically[/green]")
    else:
        status_console.print(f"  [yellow]Please open {url} in your browser[/yellow]")


async def run_review(
    subject: Union[CommitDiff, FileContent, WorkingTreeDiff],
    git_service: GitService,
    port: int = 0,
    open_browser: bool = True,
) -> ReviewSession:
    """Serve the review page and block until the review is completed."""
    server = ReviewServer(subject, git_service)
    await server.run(port)
    try:
        status_console.print(f"  Server: [dim]{server.url}[/dim]")
        status_console.print()

        if open_browser:
            open_in_browser(server.url)
        else:
            status_console.print(f"  [yellow]Open {server.url} in your browser[/yellow]")

        status_console.print()
        status_console.print("[dim]Waiting for review to complete...[/dim]")
        status_console.print("[dim]Press Ctrl+C to cancel[/dim]")
        status_console.print()

        return await server.wait_for_completion()
    finally:
        await server.shutdown()


def collect_file_lines(
    subject: Union[CommitDiff, FileContent, WorkingTreeDiff],
    git_service: GitService,
) -> FileLines:
    """Line contents used as context in the summary. Empty if they cannot be read."""
    try:
        return extract_file_lines(load_file_view(subject, git_service))
    except (GitError, OSError) as e:
        logger.warning("Could not load file contents for context: %s", e)
        return {}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    git_service = GitService(
        context_lines=settings.diff_context_lines,
        include_untracked=settings.include_untracked,
    )

    try:
        subject = resolve_subject(args.input, git_service)
    except HrevuError as e:
        status_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        return 1

    status_console.print()
    status_console.print("[bold cyan]▶ Starting hrevu...[/bold cyan]")
    status_console.print(f"  Target: {escape(subject.display_title())}")
    status_console.print()

    port = args.port or settings.port or 0
    open_browser = settings.open_browser and not args.no_browser

    try:
        session = asyncio.run(run_review(subject, git_service, port, open_browser))
    except (KeyboardInterrupt, ReviewCancelledError):
        status_console.print("\n[yellow]Review cancelled[/yellow]")
        return 130
    except (HrevuError, OSError) as e:
        status_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        return 1

    if args.json:
        print_json(session)
    else:
        print_summary(session, collect_file_lines(session.subject, git_service))
        status_console.print()
        status_console.print("[bold green]✓ Review complete![/bold green]")

    return 0


def run() -> None:
    """Entry point for the hrevu command."""
    sys.exit(main())


if __name__ == "__main__":
    run()
