"""Models package: database, data models, and enums."""

from models.database import Database
from models.book import Book, Chapter
from models.job import GenerationJob
from models.outline import BookOutline, ChapterOutline, OutlineCharacter, SavedOutline
from models.user import User
from models.enums import (
    BookStatus,
    ChapterStatus,
    JobStatus,
    JobScope,
    UserTier,
    LengthCategory,
    ExportFormat,
    Provider,
    ACTIVE_JOB_STATUSES,
    TERMINAL_JOB_STATUSES,
)

__all__ = [
    "Database",
    "Book",
    "Chapter",
    "GenerationJob",
    "BookOutline",
    "ChapterOutline",
    "OutlineCharacter",
    "SavedOutline",
    "User",
    "BookStatus",
    "ChapterStatus",
    "JobStatus",
    "JobScope",
    "UserTier",
    "LengthCategory",
    "ExportFormat",
    "Provider",
    "ACTIVE_JOB_STATUSES",
    "TERMINAL_JOB_STATUSES",
]
