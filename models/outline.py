"""Outline data models.

Outlines travel as JSON between the LLM, the client and the database, so
these dataclasses carry their own camelCase (de)serialization.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def _as_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class ChapterOutline:
    """One planned chapter."""
    number: int = 0
    title: str = ""
    summary: str = ""
    word_count: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "ChapterOutline":
        return cls(
            number=_as_int(data.get("number")),
            title=str(data.get("title") or ""),
            summary=str(data.get("summary") or ""),
            word_count=_as_int(data.get("wordCount", data.get("word_count"))),
        )

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "title": self.title,
            "summary": self.summary,
            "wordCount": self.word_count,
        }


@dataclass
class OutlineCharacter:
    """A character listed in a fiction outline."""
    name: str = ""
    role: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "OutlineCharacter":
        return cls(
            name=str(data.get("name") or ""),
            role=str(data.get("role") or ""),
            description=str(data.get("description") or ""),
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "role": self.role, "description": self.description}


@dataclass
class BookOutline:
    """The structured book plan produced before chapter generation."""
    title: str = ""
    author: str = ""
    genre: str = ""
    description: str = ""
    chapters: list[ChapterOutline] = field(default_factory=list)
    themes: list[str] = field(default_factory=list)
    characters: list[OutlineCharacter] = field(default_factory=list)
    total_word_count: int = 0

    @property
    def chapter_word_total(self) -> int:
        """Sum of the per-chapter word counts (may drift from total_word_count)."""
        return sum(ch.word_count for ch in self.chapters)

    @property
    def is_non_fiction(self) -> bool:
        return not self.characters

    def get_chapter(self, number: int) -> Optional[ChapterOutline]:
        for ch in self.chapters:
            if ch.number == number:
                return ch
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "BookOutline":
        chapters = [
            ChapterOutline.from_dict(ch)
            for ch in data.get("chapters") or []
            if isinstance(ch, dict)
        ]
        characters = [
            OutlineCharacter.from_dict(c)
            for c in data.get("characters") or []
            if isinstance(c, dict)
        ]
        total = data.get("totalWordCount", data.get("total_word_count"))
        return cls(
            title=str(data.get("title") or ""),
            author=str(data.get("author") or ""),
            genre=str(data.get("genre") or ""),
            description=str(data.get("description") or ""),
            chapters=chapters,
            themes=[str(t) for t in data.get("themes") or []],
            characters=characters,
            total_word_count=_as_int(total) if total is not None else sum(ch.word_count for ch in chapters),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "genre": self.genre,
            "description": self.description,
            "chapters": [ch.to_dict() for ch in self.chapters],
            "themes": list(self.themes),
            "characters": [c.to_dict() for c in self.characters],
            "totalWordCount": self.total_word_count,
        }


@dataclass
class SavedOutline:
    """A named outline snapshot in a user's history."""
    id: Optional[int] = None
    user_id: str = ""
    title: str = ""
    outline: BookOutline = field(default_factory=BookOutline)
    config: Optional[dict] = None
    created_at: Optional[datetime] = None
