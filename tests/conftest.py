"""Shared pytest fixtures for the bookstudio test suite."""

import copy

import pytest
from unittest.mock import MagicMock, AsyncMock

import httpx


SAMPLE_OUTLINE = {
    "title": "The Lantern Keeper",
    "author": "Ada Lane",
    "genre": "Fantasy",
    "description": "A keeper of lanterns guards the last light of a drowned city.",
    "chapters": [
        {"number": 1, "title": "Low Tide", "summary": "Mira lights the lanterns.", "wordCount": 3000},
        {"number": 2, "title": "The Flood Bell", "summary": "The bell rings at dusk.", "wordCount": 3000},
        {"number": 3, "title": "Salt and Ash", "summary": "An old friend returns.", "wordCount": 3000},
    ],
    "themes": ["duty", "memory"],
    "characters": [
        {"name": "Mira", "role": "protagonist", "description": "The last lantern keeper."},
    ],
    "totalWordCount": 9000,
}


@pytest.fixture
def outline_data():
    """A fresh deep copy of the sample outline JSON."""
    return copy.deepcopy(SAMPLE_OUTLINE)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite database path."""
    return tmp_path / "test_studio.db"


@pytest.fixture
def db(tmp_db_path):
    """Return an initialized Database instance backed by a temp file."""
    from models.database import Database
    return Database(tmp_db_path)


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path, tmp_db_path):
    """Return a Settings instance isolated from .env and the real environment keys."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        sqlite_db_path=tmp_db_path,
        log_dir=tmp_path / "logs",
        openai_api_key=None,
        openrouter_api_key=None,
        inngest_event_key="test-event-key",
        inngest_base_url="https://events.test",
        demo_user_id="demo-user-001",
    )


# ---------------------------------------------------------------------------
# LLM client mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_llm():
    """Return a MagicMock replacing LLMClient."""
    llm = MagicMock()
    llm.chat = AsyncMock(return_value="Mira climbed the tower.\n\n[END CHAPTER]")
    llm.chat_json = AsyncMock(return_value=copy.deepcopy(SAMPLE_OUTLINE))
    llm.default_model.side_effect = lambda purpose="outline": (
        "gpt-4o-mini" if purpose == "outline" else "gpt-4o"
    )
    llm.total_calls = 1
    llm.get_usage_summary.return_value = {"total_calls": 1, "by_model": {}}
    return llm


# ---------------------------------------------------------------------------
# Event bus
# ---------------------------------------------------------------------------

@pytest.fixture
def published_events():
    """Requests received by the fake event API, as decoded JSON bodies."""
    return []


@pytest.fixture
def event_bus(settings, published_events):
    """EventBus whose HTTP calls are answered by an in-memory transport."""
    import json
    from services.event_bus import EventBus

    def handler(request: httpx.Request) -> httpx.Response:
        published_events.append(json.loads(request.content))
        return httpx.Response(200, json={"ids": ["evt-1"], "status": 200})

    return EventBus(settings, transport=httpx.MockTransport(handler))


@pytest.fixture
def failing_event_bus(settings):
    from services.event_bus import EventBus

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "unavailable"})

    return EventBus(settings, transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def owner_id():
    return "user-owner"


@pytest.fixture
def sample_book(db, owner_id):
    """Insert a completed book with three chapters, two of them narrated."""
    from models.book import Book, Chapter
    from models.enums import BookStatus

    book = Book(
        user_id=owner_id,
        title="The Lantern Keeper",
        author="Ada Lane",
        genre="Fantasy",
        summary="A keeper of lanterns guards the last light of a drowned city.",
        status=BookStatus.COMPLETED,
        metadata={"wordCount": 900, "chapters": 3, "backCoverUrl": "https://img.test/back.png"},
    )
    book.id = db.create_book(book)

    chapters = [
        Chapter(book_id=book.id, number=1, title="Low Tide", content="Chapter 1: Low Tide\n\nMira lit the lanterns.",
                word_count=300, audio_url="https://audio.test/1.mp3", audio_duration=600),
        Chapter(book_id=book.id, number=2, title="The Flood Bell", content="The bell rang at dusk.",
                word_count=300, audio_url="https://audio.test/2.mp3", audio_duration=300),
        Chapter(book_id=book.id, number=3, title="Salt and Ash", content="An old friend returned.",
                word_count=300),
    ]
    for ch in chapters:
        ch.id = db.create_chapter(ch)
    return book


@pytest.fixture
def make_job(db, sample_book, owner_id):
    """Factory inserting a job for the sample book in a given status."""
    from models.enums import JobStatus
    from models.job import GenerationJob

    def _make(status=JobStatus.PENDING, user_id=None, book_id=None):
        job = GenerationJob(
            book_id=book_id or sample_book.id,
            user_id=user_id or owner_id,
            status=status,
            total_chapters=2,
        )
        job.id = db.create_job(job)
        return db.get_job(job.id)

    return _make


@pytest.fixture
def pro_user(db):
    db.ensure_demo_user("user-pro")
    db.set_user_plan("user-pro", "pro")
    return "user-pro"


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
def app(settings, db, mock_llm, event_bus):
    from api.app import create_app
    return create_app(settings=settings, db=db, llm=mock_llm, event_bus=event_bus)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture
def lenient_client(app):
    """Client that returns server errors as responses instead of raising them."""
    from fastapi.testclient import TestClient
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
