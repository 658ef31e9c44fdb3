"""Rendering of the final review for the terminal."""

import sys
from typing import Dict, Iterable, List, Optional, TextIO

from rich.console import Console
from rich.markup import escape

from hrevu.models import Comment, FileEntry, LineKind, ReviewSession

FileLines = Dict[str, Dict[int, str]]

CONTEXT_LINES = 3
RULE_WIDTH = 60


def extract_file_lines(files: Iterable[FileEntry]) -> FileLines:
    """Map each path to its line contents by line number.

    Post-image lines win over removed lines that share a number, since
    comments usually point at the new code.
    """
    result: FileLines = {}
    for entry in files:
        lines: Dict[int, str] = {}
        for line in entry.lines:
            if line.kind is LineKind.REMOVED:
                lines.setdefault(line.number, line.content)
            else:
                lines[line.number] = line.content
        result[entry.path] = lines
    return result


def print_json(session: ReviewSession, stream: Optional[TextIO] = None) -> None:
    """Print the final session as JSON."""
    stream = stream or sys.stdout
    stream.write(session.model_dump_json(indent=2, by_alias=True, exclude_none=True))
    stream.write("\n")


def group_comments(comments: Iterable[Comment]) -> Dict[Optional[str], List[Comment]]:
    """Comments by file, in order of first appearance. Global comments use None."""
    groups: Dict[Optional[str], List[Comment]] = {}
    for comment in comments:
        groups.setdefault(comment.file, []).append(comment)
    return groups


def _print_context(console: Console, lines: Dict[int, str], line_number: int) -> None:
    for number in range(max(1, line_number - CONTEXT_LINES), line_number):
        content = lines.get(number, "").strip()
        if content:
            console.print(f"    [dim]{number} │ {escape(content)}[/dim]")

    content = lines.get(line_number, "").strip()
    if content:
        console.print(
            f"    [bold yellow]{line_number} ▸[/bold yellow] [yellow]{escape(content)}[/yellow]"
        )


def print_summary(
    session: ReviewSession,
    file_lines: FileLines,
    console: Optional[Console] = None,
) -> None:
    """Print a grouped, human-readable summary of the review comments."""
    console = console or Console()

    console.print()
    console.print("═" * RULE_WIDTH)
    console.print("[bold cyan]📋 Review Summary[/bold cyan]")
    console.print("═" * RULE_WIDTH)
    console.print()

    console.print(f"[bold]Input[/bold]: {escape(session.display_title)}")
    console.print(f"[bold]Created[/bold]: {session.created_at.astimezone():%Y-%m-%d %H:%M:%S}")
    console.print(f"[bold]Comments[/bold]: {len(session.comments)}")
    console.print()

    if not session.comments:
        console.print("[dim]No comments added.[/dim]")
        console.print()
        return

    for file, comments in group_comments(session.comments).items():
        console.print()
        if file is not None:
            console.print(f"[bold]📄 {escape(file)}[/bold]")
        else:
            console.print("[bold]💬 Global Comments[/bold]")

        for comment in comments:
            console.print()
            prefix = ""
            if comment.line is not None:
                prefix = f"[yellow]Line {comment.line}[/yellow]: "
            console.print(f"💬 {prefix}{escape(comment.text)}")

            if comment.file is not None and comment.line is not None:
                lines = file_lines.get(comment.file)
                if lines:
                    _print_context(console, lines, comment.line)

            console.print(f"    [dim]─ {comment.created_at.astimezone():%H:%M}[/dim]")

    console.print()
    console.print(f"[dim]{'─' * RULE_WIDTH}[/dim]")
    console.print(f"[bold]Summary:[/bold] [cyan]{len(session.comments)}[/cyan] total comments")
