"""SQLite database initialization and CRUD operations."""

import json
import logging
import shutil
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from config.exceptions import DatabaseError
from models.book import Book, Chapter
from models.job import GenerationJob
from models.outline import BookOutline, SavedOutline
from models.user import User
from models.enums import (
    BookStatus, ChapterStatus, JobScope, JobStatus,
    ACTIVE_JOB_STATUSES, TERMINAL_JOB_STATUSES,
)

logger = logging.getLogger(__name__)

# Client-side chapters carry Date.now()-style ids until they are first saved
TEMP_CHAPTER_ID_THRESHOLD = 1_000_000_000

# SQL for creating all tables
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    first_name TEXT,
    last_name TEXT,
    plan TEXT DEFAULT 'starter',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS books (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    author TEXT,
    genre TEXT,
    summary TEXT,
    outline TEXT,
    config TEXT,
    metadata TEXT,
    cover_url TEXT,
    status TEXT DEFAULT 'draft',
    production_status TEXT,
    is_public BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS chapters (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    chapter_number INTEGER NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    content TEXT DEFAULT '',
    word_count INTEGER DEFAULT 0,
    is_edited BOOLEAN DEFAULT FALSE,
    audio_url TEXT,
    audio_duration INTEGER,
    audio_metadata TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS video_export_jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    scope TEXT NOT NULL DEFAULT 'full',
    chapter_number INTEGER,
    theme TEXT DEFAULT 'day',
    current_phase TEXT DEFAULT 'initializing',
    progress INTEGER DEFAULT 0,
    current_chapter INTEGER DEFAULT 0,
    total_chapters INTEGER DEFAULT 0,
    current_frame INTEGER DEFAULT 0,
    total_frames INTEGER DEFAULT 0,
    output_url TEXT,
    output_size INTEGER,
    output_duration INTEGER,
    error TEXT,
    retry_count INTEGER DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    started_at TIMESTAMP,
    completed_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS saved_outlines (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    outline TEXT NOT NULL,
    config TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# Indexes added via migration (idempotent)
_MIGRATION_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_books_user ON books(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_books_public ON books(is_public)",
    "CREATE INDEX IF NOT EXISTS idx_chapters_book_number ON chapters(book_id, chapter_number)",
    "CREATE INDEX IF NOT EXISTS idx_jobs_book ON video_export_jobs(book_id)",
    "CREATE INDEX IF NOT EXISTS idx_jobs_user_status ON video_export_jobs(user_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_saved_outlines_user ON saved_outlines(user_id, created_at)",
]

# Columns a partial book update may touch, mapped from field name to column
_BOOK_UPDATE_COLUMNS = {
    "title": "title",
    "author": "author",
    "genre": "genre",
    "summary": "summary",
    "status": "status",
    "production_status": "production_status",
    "cover_url": "cover_url",
    "outline": "outline",
    "config": "config",
    "metadata": "metadata",
}
_JSON_BOOK_COLUMNS = {"outline", "config", "metadata"}

_JOB_UPDATE_COLUMNS = {
    "status", "current_phase", "progress", "current_chapter", "total_chapters",
    "current_frame", "total_frames", "output_url", "output_size",
    "output_duration", "error", "retry_count", "started_at", "completed_at",
}


def _dump(value: Any) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _load(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed JSON column value: %.80s", raw)
        return None


def _placeholders(values) -> str:
    return ", ".join("?" for _ in values)


class Database:
    """SQLite database manager for books, chapters, jobs and outlines."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        """Open a connection for one transaction.

        Commits on success, rolls back on error and always closes. SQLite
        errors surface as DatabaseError with the original chained.
        """
        conn = None
        try:
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            with conn:
                yield conn
        except sqlite3.Error as e:
            logger.error("Database error on %s: %s", self.db_path, e)
            raise DatabaseError(f"Database operation failed: {e}", {"error": type(e).__name__}) from e
        finally:
            if conn is not None:
                conn.close()

    def _init_db(self):
        with self._get_conn() as conn:
            conn.executescript(_CREATE_TABLES_SQL)
        self._migrate()

    def _migrate(self):
        """Apply idempotent schema migrations (indexes)."""
        with self._get_conn() as conn:
            for sql in _MIGRATION_SQL:
                try:
                    conn.execute(sql)
                except sqlite3.OperationalError as e:
                    logger.debug("Migration skipped (already applied): %s", e)

    def backup_database(self, target_path: str | Path) -> Path:
        """Create a backup copy of the database.

        Args:
            target_path: Path for the backup file.

        Returns:
            Path to the backup file.
        """
        target = Path(target_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with self._get_conn() as conn:
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        shutil.copy2(str(self.db_path), str(target))
        logger.info("Database backed up to %s", target)
        return target

    # ---- Users ----

    def ensure_demo_user(self, user_id: str) -> bool:
        """Insert a placeholder user row if none exists.

        Returns:
            True when a row was created.
        """
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO users (id, email, first_name, last_name, plan) "
                "VALUES (?, ?, ?, ?, ?)",
                (user_id, f"{user_id}@demo.powerwrite.com", "Demo", "User", "starter"),
            )
            created = cursor.rowcount > 0
        if created:
            logger.info("Created placeholder user %s", user_id)
        return created

    def get_user(self, user_id: str) -> Optional[User]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                return None
            return User(
                id=row["id"], email=row["email"],
                first_name=row["first_name"], last_name=row["last_name"],
                plan=row["plan"] or "starter",
                created_at=row["created_at"], updated_at=row["updated_at"],
            )

    def set_user_plan(self, user_id: str, plan: str) -> bool:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE users SET plan=?, updated_at=CURRENT_TIMESTAMP WHERE id=?",
                (plan, user_id),
            )
            return cursor.rowcount > 0

    def count_user_books(self, user_id: str) -> int:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM books WHERE user_id = ?", (user_id,),
            ).fetchone()
            return row["n"]

    # ---- Book CRUD ----

    def create_book(self, book: Book) -> int:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO books (user_id, title, author, genre, summary, outline, "
                "config, metadata, cover_url, status, production_status, is_public) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (book.user_id, book.title, book.author, book.genre, book.summary,
                 _dump(book.outline), _dump(book.config), _dump(book.metadata or {}),
                 book.cover_url, book.status.value, book.production_status,
                 book.is_public),
            )
            return cursor.lastrowid

    def get_book(self, book_id: int) -> Optional[Book]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            if not row:
                return None
            return self._row_to_book(row)

    def list_user_books(self, user_id: str) -> list[Book]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM books WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
            return [self._row_to_book(r) for r in rows]

    def list_public_books(self) -> list[Book]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM books WHERE is_public = TRUE ORDER BY updated_at DESC, id DESC",
            ).fetchall()
            return [self._row_to_book(r) for r in rows]

    def update_book(self, book_id: int, **fields) -> Optional[Book]:
        """Apply a partial update and return the updated book.

        Only keys known to the books table are written; unknown keys raise
        ValueError so callers notice typos.

        Returns:
            The updated Book, or None when no such book exists.
        """
        unknown = set(fields) - set(_BOOK_UPDATE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown book fields: {', '.join(sorted(unknown))}")

        assignments = []
        params = []
        for name, value in fields.items():
            column = _BOOK_UPDATE_COLUMNS[name]
            if column in _JSON_BOOK_COLUMNS:
                value = _dump(value)
            elif isinstance(value, BookStatus):
                value = value.value
            assignments.append(f"{column}=?")
            params.append(value)

        with self._get_conn() as conn:
            if assignments:
                cursor = conn.execute(
                    f"UPDATE books SET {', '.join(assignments)}, "
                    "updated_at=CURRENT_TIMESTAMP WHERE id=?",
                    (*params, book_id),
                )
                if cursor.rowcount == 0:
                    return None
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            return self._row_to_book(row) if row else None

    def set_book_public(self, book_id: int, is_public: bool) -> bool:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE books SET is_public=?, updated_at=CURRENT_TIMESTAMP WHERE id=?",
                (is_public, book_id),
            )
            return cursor.rowcount > 0

    def delete_book(self, book_id: int) -> bool:
        """Delete a book with its chapters and export jobs."""
        with self._get_conn() as conn:
            conn.execute("DELETE FROM video_export_jobs WHERE book_id = ?", (book_id,))
            conn.execute("DELETE FROM chapters WHERE book_id = ?", (book_id,))
            cursor = conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Book %d and all associated data deleted", book_id)
        return deleted

    def duplicate_book(self, book_id: int, user_id: str) -> Optional[Book]:
        """Copy a book and its chapters into a new draft owned by user_id."""
        source = self.get_book(book_id)
        if source is None:
            return None

        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO books (user_id, title, author, genre, summary, outline, "
                "config, metadata, cover_url, status, production_status, is_public) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, FALSE)",
                (user_id, f"{source.title} (Copy)", source.author, source.genre,
                 source.summary, _dump(source.outline), _dump(source.config),
                 _dump(source.metadata or {}), source.cover_url,
                 BookStatus.DRAFT.value, source.production_status),
            )
            new_id = cursor.lastrowid
            conn.execute(
                "INSERT INTO chapters (book_id, chapter_number, title, content, "
                "word_count, is_edited) "
                "SELECT ?, chapter_number, title, content, word_count, is_edited "
                "FROM chapters WHERE book_id = ? ORDER BY chapter_number",
                (new_id, book_id),
            )
        logger.info("Book %d duplicated as %d for user %s", book_id, new_id, user_id)
        return self.get_book(new_id)

    def _row_to_book(self, row) -> Book:
        return Book(
            id=row["id"], user_id=row["user_id"], title=row["title"],
            author=row["author"], genre=row["genre"], summary=row["summary"],
            outline=_load(row["outline"]), config=_load(row["config"]),
            metadata=_load(row["metadata"]) or {},
            cover_url=row["cover_url"],
            status=BookStatus(row["status"]),
            production_status=row["production_status"],
            is_public=bool(row["is_public"]),
            created_at=row["created_at"], updated_at=row["updated_at"],
        )

    # ---- Chapter CRUD ----

    def create_chapter(self, chapter: Chapter) -> int:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO chapters (book_id, chapter_number, title, content, "
                "word_count, is_edited, audio_url, audio_duration, audio_metadata) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (chapter.book_id, chapter.number, chapter.title, chapter.content,
                 chapter.word_count, chapter.status == ChapterStatus.COMPLETED,
                 chapter.audio_url, chapter.audio_duration,
                 _dump(chapter.audio_metadata)),
            )
            return cursor.lastrowid

    def get_chapters(self, book_id: int) -> list[Chapter]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM chapters WHERE book_id = ? ORDER BY chapter_number, id",
                (book_id,),
            ).fetchall()
            return [self._row_to_chapter(r) for r in rows]

    def get_chapter(self, book_id: int, number: int) -> Optional[Chapter]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM chapters WHERE book_id = ? AND chapter_number = ?",
                (book_id, number),
            ).fetchone()
            if not row:
                return None
            return self._row_to_chapter(row)

    def save_chapters(self, book_id: int, chapters: list[dict]) -> list[Chapter]:
        """Upsert a full chapter list for a book and refresh its metadata.

        Each item carries ``id``, ``number``, ``title``, ``content`` and
        ``wordCount``. Ids above TEMP_CHAPTER_ID_THRESHOLD (or missing) are
        client placeholders: the row is matched by chapter number instead,
        and inserted when no row has that number. Unknown real ids are
        inserted too. Saved chapters are marked edited. Numbers are stored
        exactly as given.

        Returns:
            The saved chapters, in input order.
        """
        saved_ids = []
        with self._get_conn() as conn:
            for item in chapters:
                number = int(item.get("number") or 0)
                title = item.get("title") or ""
                content = item.get("content") or ""
                word_count = int(item.get("wordCount", item.get("word_count")) or 0)
                raw_id = item.get("id")
                chapter_id = int(raw_id) if raw_id is not None else None

                if chapter_id is not None and chapter_id <= TEMP_CHAPTER_ID_THRESHOLD:
                    existing = conn.execute(
                        "SELECT id FROM chapters WHERE id = ? AND book_id = ?",
                        (chapter_id, book_id),
                    ).fetchone()
                else:
                    existing = conn.execute(
                        "SELECT id FROM chapters WHERE book_id = ? AND chapter_number = ?",
                        (book_id, number),
                    ).fetchone()

                if existing is not None:
                    conn.execute(
                        "UPDATE chapters SET chapter_number=?, title=?, content=?, "
                        "word_count=?, is_edited=TRUE, updated_at=CURRENT_TIMESTAMP "
                        "WHERE id=?",
                        (number, title, content, word_count, existing["id"]),
                    )
                    saved_ids.append(existing["id"])
                else:
                    cursor = conn.execute(
                        "INSERT INTO chapters (book_id, chapter_number, title, content, "
                        "word_count, is_edited) VALUES (?, ?, ?, ?, ?, TRUE)",
                        (book_id, number, title, content, word_count),
                    )
                    saved_ids.append(cursor.lastrowid)

            row = conn.execute("SELECT metadata FROM books WHERE id = ?", (book_id,)).fetchone()
            metadata = (_load(row["metadata"]) if row else None) or {}
            metadata["wordCount"] = sum(
                int(c.get("wordCount", c.get("word_count")) or 0) for c in chapters
            )
            metadata["chapters"] = len(chapters)
            conn.execute(
                "UPDATE books SET metadata=?, updated_at=CURRENT_TIMESTAMP WHERE id=?",
                (_dump(metadata), book_id),
            )

            if not saved_ids:
                return []
            rows = conn.execute(
                f"SELECT * FROM chapters WHERE id IN ({_placeholders(saved_ids)})",
                saved_ids,
            ).fetchall()
        by_id = {r["id"]: self._row_to_chapter(r) for r in rows}
        return [by_id[i] for i in saved_ids]

    def _row_to_chapter(self, row) -> Chapter:
        return Chapter(
            id=row["id"], book_id=row["book_id"],
            number=row["chapter_number"], title=row["title"],
            content=row["content"] or "", word_count=row["word_count"] or 0,
            status=ChapterStatus.COMPLETED if row["is_edited"] else ChapterStatus.DRAFT,
            audio_url=row["audio_url"], audio_duration=row["audio_duration"],
            audio_metadata=_load(row["audio_metadata"]),
            created_at=row["created_at"], updated_at=row["updated_at"],
        )

    # ---- Export jobs ----

    def create_job(self, job: GenerationJob) -> int:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO video_export_jobs (book_id, user_id, status, scope, "
                "chapter_number, theme, current_phase, progress, current_chapter, "
                "total_chapters, current_frame, total_frames) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (job.book_id, job.user_id, job.status.value, job.scope.value,
                 job.chapter_number, job.theme, job.current_phase, job.progress,
                 job.current_chapter, job.total_chapters, job.current_frame,
                 job.total_frames),
            )
            return cursor.lastrowid

    def get_job(self, job_id: int) -> Optional[GenerationJob]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM video_export_jobs WHERE id = ?", (job_id,),
            ).fetchone()
            if not row:
                return None
            return self._row_to_job(row)

    def list_book_jobs(self, book_id: int) -> list[GenerationJob]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM video_export_jobs WHERE book_id = ? ORDER BY id DESC",
                (book_id,),
            ).fetchall()
            return [self._row_to_job(r) for r in rows]

    def update_job(self, job_id: int, **fields) -> bool:
        """Update a job that has not reached a terminal state.

        The status guard lives in the WHERE clause, so an update racing a
        cancel or completion is a no-op instead of reviving the job.

        Returns:
            True when a row was updated.
        """
        unknown = set(fields) - _JOB_UPDATE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown job fields: {', '.join(sorted(unknown))}")
        if not fields:
            return False

        assignments = []
        params = []
        for name, value in fields.items():
            if isinstance(value, JobStatus):
                value = value.value
            assignments.append(f"{name}=?")
            params.append(value)
        terminal = [s.value for s in TERMINAL_JOB_STATUSES]

        with self._get_conn() as conn:
            cursor = conn.execute(
                f"UPDATE video_export_jobs SET {', '.join(assignments)} "
                f"WHERE id=? AND status NOT IN ({_placeholders(terminal)})",
                (*params, job_id, *terminal),
            )
            return cursor.rowcount > 0

    def cancel_job(self, job_id: int) -> bool:
        """Mark an active job cancelled.

        Returns:
            False when the job is missing or no longer active.
        """
        active = [s.value for s in ACTIVE_JOB_STATUSES]
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE video_export_jobs SET status=?, completed_at=CURRENT_TIMESTAMP "
                f"WHERE id=? AND status IN ({_placeholders(active)})",
                (JobStatus.CANCELLED.value, job_id, *active),
            )
            return cursor.rowcount > 0

    def delete_job(self, job_id: int) -> bool:
        with self._get_conn() as conn:
            cursor = conn.execute("DELETE FROM video_export_jobs WHERE id = ?", (job_id,))
            return cursor.rowcount > 0

    def _row_to_job(self, row) -> GenerationJob:
        return GenerationJob(
            id=row["id"], book_id=row["book_id"], user_id=row["user_id"],
            status=JobStatus(row["status"]), scope=JobScope(row["scope"]),
            chapter_number=row["chapter_number"], theme=row["theme"],
            current_phase=row["current_phase"], progress=row["progress"] or 0,
            current_chapter=row["current_chapter"] or 0,
            total_chapters=row["total_chapters"] or 0,
            current_frame=row["current_frame"] or 0,
            total_frames=row["total_frames"] or 0,
            output_url=row["output_url"], output_size=row["output_size"],
            output_duration=row["output_duration"], error=row["error"],
            retry_count=row["retry_count"] or 0,
            created_at=row["created_at"], started_at=row["started_at"],
            completed_at=row["completed_at"],
        )

    # ---- Saved outlines ----

    def save_outline(self, user_id: str, title: str, outline: BookOutline,
                     config: Optional[dict] = None) -> SavedOutline:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO saved_outlines (user_id, title, outline, config) "
                "VALUES (?, ?, ?, ?)",
                (user_id, title, _dump(outline.to_dict()), _dump(config)),
            )
            row = conn.execute(
                "SELECT * FROM saved_outlines WHERE id = ?", (cursor.lastrowid,),
            ).fetchone()
            return self._row_to_saved_outline(row)

    def get_user_outlines(self, user_id: str) -> list[SavedOutline]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM saved_outlines WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
            return [self._row_to_saved_outline(r) for r in rows]

    def get_saved_outline(self, outline_id: int) -> Optional[SavedOutline]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM saved_outlines WHERE id = ?", (outline_id,),
            ).fetchone()
            if not row:
                return None
            return self._row_to_saved_outline(row)

    def delete_outline(self, outline_id: int, user_id: str) -> bool:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "DELETE FROM saved_outlines WHERE id = ? AND user_id = ?",
                (outline_id, user_id),
            )
            return cursor.rowcount > 0

    def _row_to_saved_outline(self, row) -> SavedOutline:
        return SavedOutline(
            id=row["id"], user_id=row["user_id"], title=row["title"],
            outline=BookOutline.from_dict(_load(row["outline"]) or {}),
            config=_load(row["config"]),
            created_at=row["created_at"],
        )
