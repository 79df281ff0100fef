"""Unified Rich theme and reusable UI helper functions for the CLI."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme
from rich.tree import Tree

from models.book import Book, Chapter
from models.enums import BookStatus, JobStatus
from models.outline import BookOutline, OutlineCharacter

STUDIO_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "genre": "bold",
    "stat.label": "dim",
    "stat.value": "bold",
    "chapter.num": "blue",
    "character.name": "bold cyan",
})

BOOK_STATUS_COLORS = {
    BookStatus.DRAFT: "yellow",
    BookStatus.GENERATING: "blue",
    BookStatus.COMPLETED: "green",
    BookStatus.FAILED: "red",
}

JOB_STATUS_COLORS = {
    JobStatus.PENDING: "yellow",
    JobStatus.RENDERING: "blue",
    JobStatus.STITCHING: "cyan",
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
    JobStatus.CANCELLED: "dim",
}


def get_console() -> Console:
    """Return a Console instance with the studio theme applied."""
    return Console(theme=STUDIO_THEME)


def app_header(title: str = "bookstudio") -> Rule:
    return Rule(title=f"[bold]{title}[/]", style="dim")


def command_panel(title: str, fields: dict[str, str]) -> Panel:
    """Return a Panel displaying command parameters.

    Args:
        title: Panel title (e.g. "Generate outline").
        fields: Ordered dict of label -> value pairs.
    """
    lines = []
    for label, value in fields.items():
        lines.append(f"  [stat.label]{label}:[/] [stat.value]{value}[/]")
    body = "\n".join(lines)
    return Panel(body, title=f"[bold]{title}[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def colored_status(status, colors: dict) -> str:
    return f"[{colors.get(status, 'white')}]{status.value}[/]"


def book_summary_panel(book: Book, chapters: list[Chapter]) -> Panel:
    summary = book.summary or ""
    if len(summary) > 200:
        summary = summary[:200] + "..."
    total_words = sum(ch.word_count for ch in chapters)

    body = (
        f"  [stat.label]Author:[/] {book.author or '-'}  "
        f"[muted]|[/]  [stat.label]Genre:[/] [genre]{book.genre or '-'}[/]  "
        f"[muted]|[/]  [stat.label]Status:[/] {colored_status(book.status, BOOK_STATUS_COLORS)}\n"
        f"  [stat.label]Chapters:[/] [stat.value]{len(chapters)}[/]  "
        f"[muted]|[/]  [stat.label]Words:[/] [stat.value]{total_words:,}[/]  "
        f"[muted]|[/]  [stat.label]Public:[/] {'yes' if book.is_public else 'no'}\n"
        f"  [stat.label]Summary:[/] {summary}"
    )
    return Panel(
        body,
        title=f"[bold]{book.title}[/] [muted](ID: {book.id})[/]",
        box=box.ROUNDED,
        border_style="dim",
        padding=(0, 2),
    )


def outline_tree(outline: BookOutline, max_chapters: int = 20) -> Tree:
    """Build a Rich Tree of an outline's chapters with their summaries."""
    tree = Tree(
        f"[bold]{outline.title}[/] [muted]by {outline.author} "
        f"({outline.total_word_count:,} words)[/]"
    )
    for ch in outline.chapters[:max_chapters]:
        summary = ch.summary or ""
        short = (summary[:60] + "...") if len(summary) > 60 else summary
        tree.add(f"[chapter.num]{ch.number}.[/] [bold]{ch.title}[/] [muted]({ch.word_count:,})[/] {short}")
    if len(outline.chapters) > max_chapters:
        tree.add(f"[muted]... ({len(outline.chapters)} chapters total)[/]")
    return tree


def character_cards(characters: list[OutlineCharacter]) -> Table:
    table = Table(box=box.ROUNDED, border_style="dim", show_header=True, padding=(0, 1))
    table.add_column("Character", style="character.name")
    table.add_column("Role", style="muted")
    table.add_column("Description")

    for c in characters[:8]:
        desc = c.description
        if len(desc) > 50:
            desc = desc[:50] + "..."
        table.add_row(c.name, c.role, desc)

    if len(characters) > 8:
        table.add_row(f"[muted]+{len(characters) - 8} more[/]", "", "")

    return table
