"""Enumerations for book, chapter and job status tracking."""

from enum import Enum


class BookStatus(str, Enum):
    DRAFT = "draft"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class ChapterStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"


class JobStatus(str, Enum):
    PENDING = "pending"
    RENDERING = "rendering"
    STITCHING = "stitching"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_JOB_STATUSES


ACTIVE_JOB_STATUSES = frozenset({JobStatus.PENDING, JobStatus.RENDERING, JobStatus.STITCHING})
TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


class JobScope(str, Enum):
    FULL = "full"
    CHAPTER = "chapter"


class UserTier(str, Enum):
    FREE = "free"
    PRO = "pro"


class LengthCategory(str, Enum):
    MICRO = "micro"
    NOVELLA = "novella"
    SHORT_NOVEL = "short-novel"
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"
    EPIC = "epic"


class ExportFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    MD = "md"
    HTML = "html"
    EPUB = "epub"


class Provider(str, Enum):
    OPENAI = "openai"
    OPENROUTER = "openrouter"
