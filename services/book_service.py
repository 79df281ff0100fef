"""Book and chapter operations behind the /api/books endpoints."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from config.exceptions import AuthorizationError, NotFoundError, ValidationError
from config.settings import Settings, get_settings
from models.book import Book, Chapter
from models.database import Database
from models.enums import BookStatus, UserTier
from models.outline import BookOutline
from services.export_service import ExportResult, export_book, parse_format
from services.user_service import get_user_tier

logger = logging.getLogger(__name__)

WORDS_PER_PAGE = 250
WORDS_PER_MINUTE = 250

# Request field -> Database.update_book field
PATCHABLE_FIELDS = {
    "title": "title",
    "author": "author",
    "summary": "summary",
    "status": "status",
    "productionStatus": "production_status",
}


def parse_book_id(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid book ID") from e


class BookService:

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.db = db

    def _require_book(self, book_id: int) -> Book:
        book = self.db.get_book(book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        return book

    def get_book_with_chapters(self, book_id: int) -> tuple[Book, list[Chapter]]:
        book = self._require_book(book_id)
        return book, self.db.get_chapters(book_id)

    def update_book(self, book_id: int, updates: dict) -> Book:
        """Apply a partial update limited to the patchable fields."""
        if not isinstance(updates, dict):
            raise ValidationError("Request body must be a JSON object")
        fields = {
            PATCHABLE_FIELDS[key]: value
            for key, value in updates.items()
            if key in PATCHABLE_FIELDS
        }
        if not fields:
            raise ValidationError(
                "No updatable fields. Allowed: " + ", ".join(PATCHABLE_FIELDS)
            )
        for key, value in updates.items():
            if key in PATCHABLE_FIELDS and value is not None and not isinstance(value, str):
                raise ValidationError(f"{key} must be a string")
        if "status" in fields:
            try:
                fields["status"] = BookStatus(fields["status"])
            except ValueError as e:
                raise ValidationError(f"Invalid status: {fields['status']}") from e
        if "title" in fields and not str(fields["title"] or "").strip():
            raise ValidationError("title cannot be empty")

        book = self.db.update_book(book_id, **fields)
        if book is None:
            raise NotFoundError("Book", book_id)
        logger.info("Book %d updated: %s", book_id, ", ".join(sorted(fields)))
        return book

    def save_generated_book(
        self, user_id: str, outline: BookOutline, config: dict, chapters: list[dict],
    ) -> Book:
        """Store a freshly generated book and its chapters as completed."""
        total_words = sum(ch["word_count"] for ch in chapters)
        now = datetime.now(timezone.utc).isoformat()
        book = Book(
            user_id=user_id,
            title=outline.title,
            author=outline.author,
            genre=outline.genre,
            summary=outline.description,
            outline=outline.to_dict(),
            config=config,
            metadata={
                "wordCount": total_words,
                "pageCount": math.ceil(total_words / WORDS_PER_PAGE),
                "readingTime": math.ceil(total_words / WORDS_PER_MINUTE),
                "chapters": len(chapters),
                "generatedAt": now,
                "lastModified": now,
            },
            status=BookStatus.COMPLETED,
        )
        book.id = self.db.create_book(book)
        for number, generated in enumerate(chapters, start=1):
            self.db.create_chapter(Chapter(
                book_id=book.id,
                number=number,
                title=generated["title"],
                content=generated["content"],
                word_count=generated["word_count"],
            ))
        logger.info("Saved generated book %d: %d chapters, %d words", book.id, len(chapters), total_words)
        return self._require_book(book.id)

    def delete_book(self, book_id: int):
        self._require_book(book_id)
        self.db.delete_book(book_id)

    def save_chapters(self, book_id: int, chapters: Any) -> list[Chapter]:
        if not isinstance(chapters, list) or not all(isinstance(c, dict) for c in chapters):
            raise ValidationError("Invalid chapters data")
        self._require_book(book_id)
        logger.info("Updating %d chapters for book %d", len(chapters), book_id)
        try:
            return self.db.save_chapters(book_id, chapters)
        except (TypeError, ValueError) as e:
            raise ValidationError("Invalid chapters data", {"reason": str(e)}) from e

    def duplicate_book(self, book_id: int, user_id: Optional[str]) -> Book:
        if not user_id:
            raise ValidationError("Missing userId")
        copy = self.db.duplicate_book(book_id, user_id)
        if copy is None:
            raise NotFoundError("Book", book_id, "Book not found or could not be duplicated")
        return copy

    def set_showcase(self, book_id: int, public: bool) -> Book:
        book = self._require_book(book_id)
        if public and book.status != BookStatus.COMPLETED:
            raise ValidationError("Only completed books can be added to the showcase")
        self.db.set_book_public(book_id, public)
        logger.info("Book %d %s showcase", book_id, "added to" if public else "removed from")
        return self._require_book(book_id)

    def export(self, actor_id: str, book_id: Any, export_format: Any) -> ExportResult:
        """Render a book for download; owner or pro only."""
        if not book_id or not export_format:
            raise ValidationError("Missing required fields: bookId, format")
        fmt = parse_format(export_format)
        book_id = parse_book_id(book_id)
        book = self._require_book(book_id)

        if book.user_id != actor_id:
            if get_user_tier(self.db, actor_id) != UserTier.PRO:
                raise AuthorizationError("Unauthorized - You do not own this book")
            logger.info("Pro user %s exporting book %d owned by %s", actor_id, book_id, book.user_id)

        return export_book(book, self.db.get_chapters(book_id), fmt)
