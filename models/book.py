"""Book and chapter data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from models.enums import BookStatus, ChapterStatus


@dataclass
class Book:
    """Represents a generated book and its metadata."""
    id: Optional[int] = None
    user_id: str = ""
    title: str = ""
    author: Optional[str] = None
    genre: Optional[str] = None
    summary: Optional[str] = None
    outline: Optional[dict] = None  # JSON: outline as generated/edited
    config: Optional[dict] = None  # JSON: studio configuration used for generation
    metadata: dict[str, Any] = field(default_factory=dict)  # JSON: wordCount, chapters, backCoverUrl
    cover_url: Optional[str] = None
    status: BookStatus = BookStatus.DRAFT
    production_status: Optional[str] = None
    is_public: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Chapter:
    """Represents a single chapter of a book."""
    id: Optional[int] = None
    book_id: int = 0
    number: int = 0
    title: str = ""
    content: str = ""
    word_count: int = 0
    status: ChapterStatus = ChapterStatus.DRAFT
    audio_url: Optional[str] = None
    audio_duration: Optional[int] = None  # seconds
    audio_metadata: Optional[dict] = None  # JSON: voice, speed, model, generatedAt
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
