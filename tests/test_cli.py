"""Tests for the click command line."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from models.book import Book, Chapter
from models.database import Database
from models.enums import BookStatus, JobStatus
from models.job import GenerationJob


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point Settings() at a throwaway database and log directory."""
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("SQLITE_DB_PATH", str(db_path))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("DEMO_USER_ID", "demo-user-001")
    monkeypatch.delenv("INNGEST_EVENT_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    return db_path


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_db(cli_env):
    return Database(cli_env)


@pytest.fixture
def cli_book(cli_db):
    book_id = cli_db.create_book(Book(
        user_id="u1", title="Tide", author="Ada", genre="Fantasy", status=BookStatus.COMPLETED,
    ))
    cli_db.create_chapter(Chapter(book_id=book_id, number=1, title="Low Tide", content="Mira waited.",
                                  word_count=2))
    return book_id


def _invoke(runner, *args):
    from cli.main import cli
    return runner.invoke(cli, list(args))


class TestDatabaseCommands:
    def test_init_db_creates_demo_user(self, runner, cli_env):
        result = _invoke(runner, "init-db")
        assert result.exit_code == 0, result.output
        assert Database(cli_env).get_user("demo-user-001") is not None

    def test_init_db_without_demo(self, runner, cli_env):
        result = _invoke(runner, "init-db", "--no-demo")
        assert result.exit_code == 0, result.output
        assert Database(cli_env).get_user("demo-user-001") is None

    def test_backup(self, runner, cli_book, tmp_path):
        target = tmp_path / "backups" / "copy.db"
        result = _invoke(runner, "backup", str(target))
        assert result.exit_code == 0, result.output
        assert Database(target).get_book(cli_book).title == "Tide"


class TestBookCommands:
    def test_books_for_user(self, runner, cli_book):
        result = _invoke(runner, "books", "-u", "u1")
        assert result.exit_code == 0, result.output
        assert "Tide" in result.output

    def test_empty_showcase(self, runner, cli_book):
        result = _invoke(runner, "books")
        assert "No books found" in result.output

    def test_book_detail(self, runner, cli_book):
        result = _invoke(runner, "book", str(cli_book))
        assert result.exit_code == 0, result.output
        assert "Low Tide" in result.output

    def test_missing_book(self, runner, cli_env):
        result = _invoke(runner, "book", "999")
        assert result.exit_code == 1
        assert "Book not found" in result.output

    def test_export(self, runner, cli_book, tmp_path):
        out = tmp_path / "tide.txt"
        result = _invoke(runner, "export", str(cli_book), "-u", "u1", "-f", "txt", "-o", str(out))
        assert result.exit_code == 0, result.output
        assert "Mira waited." in out.read_text(encoding="utf-8")

    def test_export_denied(self, runner, cli_book):
        result = _invoke(runner, "export", str(cli_book), "-u", "stranger")
        assert result.exit_code == 1
        assert not list(Path(".").glob("*.md"))


class TestJobCommands:
    def test_jobs_and_cancel(self, runner, cli_db, cli_book):
        job_id = cli_db.create_job(GenerationJob(book_id=cli_book, user_id="u1", total_chapters=1))

        listed = _invoke(runner, "jobs", str(cli_book), "-u", "u1")
        assert listed.exit_code == 0, listed.output
        assert f"Video exports of book {cli_book}" in listed.output

        cancelled = _invoke(runner, "cancel", str(job_id), "-u", "u1")
        assert cancelled.exit_code == 0, cancelled.output
        assert "Job cancelled" in cancelled.output
        assert cli_db.get_job(job_id).status == JobStatus.CANCELLED

    def test_no_jobs(self, runner, cli_book):
        result = _invoke(runner, "jobs", str(cli_book), "-u", "u1")
        assert "No video export jobs" in result.output


class TestPromo:
    def test_upgrade(self, runner, cli_db):
        cli_db.ensure_demo_user("u1")
        result = _invoke(runner, "promo", "powerwrite100", "-u", "u1")
        assert result.exit_code == 0, result.output
        assert cli_db.get_user("u1").plan == "pro"

    def test_invalid_code(self, runner, cli_db):
        cli_db.ensure_demo_user("u1")
        result = _invoke(runner, "promo", "nope", "-u", "u1")
        assert result.exit_code == 1
        assert "Invalid promo code" in result.output


class TestOutline:
    def test_generates_and_saves(self, runner, cli_db, mock_llm, monkeypatch):
        import cli.main
        monkeypatch.setattr(cli.main, "LLMClient", lambda settings: mock_llm)

        result = _invoke(runner, "outline", "-t", "The Lantern Keeper", "-a", "Ada Lane",
                         "-c", "3", "-w", "9000", "-s", "u1")
        assert result.exit_code == 0, result.output
        assert "Salt and Ash" in result.output

        saved = cli_db.get_user_outlines("u1")
        assert [s.title for s in saved] == ["The Lantern Keeper"]
        assert saved[0].config == {"genre": "Fiction", "targetWordCount": 9000}

        listed = _invoke(runner, "outlines", "-u", "u1")
        assert "The Lantern Keeper" in listed.output
