"""CLI entry point for the book studio.

Usage:
  bookstudio serve              run the HTTP API
  bookstudio outline ...        generate an outline from the terminal
  bookstudio books -u USER      list a user's books
  bookstudio jobs BOOK_ID       list video export jobs of a book
  bookstudio --help             list all commands
"""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from cli.theme import (
    BOOK_STATUS_COLORS,
    JOB_STATUS_COLORS,
    app_header,
    book_summary_panel,
    character_cards,
    colored_status,
    command_panel,
    get_console,
    outline_tree,
    success_panel,
)
from config.exceptions import BookStudioError
from config.logging_config import setup_logging
from config.settings import Settings
from models.database import Database
from services.ai_service import AIService, BookGenerationConfig
from services.book_service import BookService
from services.job_service import JobService
from services.outline_builder import get_length, is_non_fiction
from services.outline_editor import OutlineHistory
from services.user_service import apply_promo_code
from tools.llm_client import LLMClient

console = get_console()
logger = logging.getLogger(__name__)


def _init_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    settings = Settings()
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


def _open_db(settings: Settings) -> Database:
    return Database(settings.sqlite_db_path)


def _fail(message: str, code: int = 1):
    console.print(f"[error]{message}[/]")
    sys.exit(code)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """PowerWrite book studio: outlines, books and video export jobs."""
    _init_logging(verbose)


# ---------------------------------------------------------------------------
# serve / init-db / backup
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
def serve(host, port):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from api.app import create_app

    settings = Settings()
    host = host or settings.host
    port = port or settings.port
    setup_logging(level=logging.getLogger().level, log_dir=settings.log_dir, console_enabled=True)
    console.print(app_header())
    console.print(command_panel("Serving API", {
        "Address": f"http://{host}:{port}",
        "Database": str(settings.sqlite_db_path),
        "LLM": "configured" if settings.has_llm_provider else "[warning]no API key[/]",
    }))
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


@cli.command(name="init-db")
@click.option("--demo/--no-demo", default=True, help="Create the shared demo account")
def init_db(demo):
    """Create the database schema."""
    settings = Settings()
    db = _open_db(settings)
    created = db.ensure_demo_user(settings.demo_user_id) if demo else False
    body = f"Database ready at [info]{settings.sqlite_db_path}[/]"
    if created:
        body += f"\nDemo account [accent]{settings.demo_user_id}[/] created"
    console.print(success_panel("init-db", body))


@cli.command()
@click.argument("target", type=click.Path(dir_okay=False, path_type=Path))
def backup(target):
    """Copy the database to TARGET."""
    settings = Settings()
    path = _open_db(settings).backup_database(target)
    console.print(f"[success]Backup written to {path}[/]")


# ---------------------------------------------------------------------------
# outlines
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--title", "-t", required=True, help="Book title")
@click.option("--author", "-a", required=True, help="Author name")
@click.option("--genre", "-g", default="Fiction", help="Genre (non-fiction genres switch prompts)")
@click.option("--description", "-d", default="", help="What the book is about")
@click.option("--chapters", "-c", default=10, type=click.IntRange(min=1), help="Number of chapters")
@click.option("--words", "-w", default=80000, type=click.IntRange(min=1), help="Target word count")
@click.option("--tone", default="engaging", help="Writing tone")
@click.option("--audience", default="general readers", help="Target audience")
@click.option("--model", "-m", default=None, help="Model id (OpenRouter ids contain a slash)")
@click.option("--save", "-s", "save_for", default=None, help="Save to this user's outline history")
def outline(title, author, genre, description, chapters, words, tone, audience, model, save_for):
    """Generate a book outline and print it."""
    settings = Settings()
    length = get_length(words)
    config = BookGenerationConfig(
        title=title,
        author=author,
        genre=genre,
        tone=tone,
        audience=audience,
        description=description,
        chapters=chapters,
        length=length.value,
        is_non_fiction=is_non_fiction(genre),
        outline_model=model,
    )

    console.print(app_header())
    console.print(command_panel("Generate outline", {
        "Title": title,
        "Author": author,
        "Genre": genre,
        "Length": f"{length.value} ({words:,} words, {chapters} chapters)",
    }))

    llm = LLMClient(settings)
    ai = AIService(llm, settings)
    progress = Progress(SpinnerColumn("dots"), TextColumn("{task.description}"), console=console)
    try:
        with progress:
            progress.add_task("  Generating outline...", total=None)
            result, model_used = asyncio.run(ai.generate_book_outline(config))
    except KeyboardInterrupt:
        console.print("\n[warning]Interrupted[/]")
        sys.exit(130)
    except BookStudioError as e:
        logger.debug("Outline generation failed", exc_info=True)
        _fail(f"Failed to generate outline: {e.message}")

    console.print()
    console.print(outline_tree(result))
    if result.characters:
        console.print()
        console.print(character_cards(result.characters))
    console.print(f"\n[muted]Model: {model_used} | LLM calls: {llm.total_calls}[/]")

    if save_for:
        history = OutlineHistory(_open_db(settings), save_for)
        saved = history.save(result, config={"genre": genre, "targetWordCount": words})
        console.print(f"[success]Saved as outline {saved.id} for {save_for}[/]")


@cli.command()
@click.option("--user", "-u", required=True, help="User id")
def outlines(user):
    """List a user's saved outlines."""
    history = OutlineHistory(_open_db(Settings()), user)
    saved = history.list_saved()
    if not saved:
        console.print("[warning]No saved outlines.[/]")
        return

    table = Table(title="Saved outlines", border_style="dim")
    table.add_column("ID", style="chapter.num")
    table.add_column("Title", style="bold")
    table.add_column("Chapters", justify="right")
    table.add_column("Words", justify="right")
    table.add_column("Saved")
    for s in saved:
        table.add_row(
            str(s.id), s.title, str(len(s.outline.chapters)),
            f"{s.outline.total_word_count:,}", str(s.created_at or ""),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# books
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--user", "-u", default=None, help="Owner id (default: public showcase)")
def books(user):
    """List a user's books, or the public showcase."""
    db = _open_db(Settings())
    rows = db.list_user_books(user) if user else db.list_public_books()
    if not rows:
        console.print("[warning]No books found.[/]")
        return

    table = Table(title=f"Books of {user}" if user else "Showcase", show_lines=True, border_style="dim")
    table.add_column("ID", style="chapter.num")
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Genre", style="genre")
    table.add_column("Status")
    table.add_column("Words", justify="right")
    for b in rows:
        table.add_row(
            str(b.id), b.title, b.author or "", b.genre or "",
            colored_status(b.status, BOOK_STATUS_COLORS),
            f"{(b.metadata or {}).get('wordCount', 0):,}",
        )
    console.print(table)


@cli.command()
@click.argument("book_id", type=int)
def book(book_id):
    """Show one book with its chapters."""
    service = BookService(_open_db(Settings()))
    try:
        b, chapters = service.get_book_with_chapters(book_id)
    except BookStudioError as e:
        _fail(e.message)

    console.print(book_summary_panel(b, chapters))
    if not chapters:
        return
    table = Table(border_style="dim")
    table.add_column("#", style="chapter.num", justify="right")
    table.add_column("Title")
    table.add_column("Words", justify="right")
    table.add_column("Status")
    table.add_column("Audio")
    for ch in chapters:
        table.add_row(
            str(ch.number), ch.title, f"{ch.word_count:,}", ch.status.value,
            "yes" if ch.audio_url else "",
        )
    console.print(table)


@cli.command()
@click.argument("book_id", type=int)
@click.option("--user", "-u", required=True, help="Acting user id")
@click.option("--format", "-f", "export_format", default="md",
              type=click.Choice(["txt", "md", "html", "pdf", "docx", "epub"]), help="Output format")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False, path_type=Path),
              help="Output file (default: derived from the title)")
def export(book_id, user, export_format, output):
    """Export a book to a file."""
    service = BookService(_open_db(Settings()))
    try:
        result = service.export(user, book_id, export_format)
    except BookStudioError as e:
        _fail(e.message)

    path = output or Path(result.filename)
    path.write_text(result.content, encoding="utf-8")
    console.print(f"[success]Exported to {path}[/]")


# ---------------------------------------------------------------------------
# video export jobs
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("book_id", type=int)
@click.option("--user", "-u", required=True, help="Acting user id")
def jobs(book_id, user):
    """List video export jobs of a book."""
    service = JobService(_open_db(Settings()))
    try:
        rows = service.list_book_jobs(book_id, user)
    except BookStudioError as e:
        _fail(e.message)

    if not rows:
        console.print("[warning]No video export jobs.[/]")
        return
    table = Table(title=f"Video exports of book {book_id}", border_style="dim")
    table.add_column("ID", style="chapter.num")
    table.add_column("Status")
    table.add_column("Scope")
    table.add_column("Phase")
    table.add_column("Progress", justify="right")
    table.add_column("Chapters", justify="right")
    table.add_column("Created")
    for j in rows:
        scope = j.scope.value if j.chapter_number is None else f"{j.scope.value} {j.chapter_number}"
        table.add_row(
            str(j.id), colored_status(j.status, JOB_STATUS_COLORS), scope, j.current_phase,
            f"{j.progress}%", f"{j.current_chapter}/{j.total_chapters}", str(j.created_at or ""),
        )
    console.print(table)


@cli.command()
@click.argument("job_id", type=int)
@click.option("--user", "-u", required=True, help="Acting user id")
def cancel(job_id, user):
    """Cancel an active video export job, or delete a finished one."""
    service = JobService(_open_db(Settings()))
    try:
        message = asyncio.run(service.cancel_or_delete(job_id, user))
    except BookStudioError as e:
        _fail(e.message)
    console.print(f"[success]{message}[/]")


# ---------------------------------------------------------------------------
# accounts
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("code")
@click.option("--user", "-u", required=True, help="User id to upgrade")
def promo(code, user):
    """Redeem a promo code for a user."""
    try:
        info = apply_promo_code(_open_db(Settings()), user, code)
    except BookStudioError as e:
        _fail(e.message)
    console.print(success_panel("Upgraded", f"{info['id']} is now on the [accent]{info['tier']}[/] tier"))


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
