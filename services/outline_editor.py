"""In-memory outline editing and saved outline history."""

import logging
from typing import Optional

from config.exceptions import NotFoundError, ValidationError
from models.database import Database
from models.outline import BookOutline, ChapterOutline, OutlineCharacter, SavedOutline

logger = logging.getLogger(__name__)

NEW_CHAPTER_SUMMARY = "Add chapter summary here..."


class OutlineEditor:
    """Mutation surface over a single BookOutline.

    Chapter numbers always match list position after add, delete and move.
    Title and author edits with blank text are ignored.
    """

    def __init__(self, outline: BookOutline):
        self.outline = outline

    def _renumber(self):
        for index, chapter in enumerate(self.outline.chapters):
            chapter.number = index + 1

    # ---- Book-level fields ----

    def set_title(self, title: str) -> bool:
        if not title or not title.strip():
            return False
        self.outline.title = title.strip()
        return True

    def set_author(self, author: str) -> bool:
        if not author or not author.strip():
            return False
        self.outline.author = author.strip()
        return True

    def set_description(self, description: str):
        self.outline.description = description or ""

    # ---- Themes ----

    def add_theme(self, theme: str) -> bool:
        theme = (theme or "").strip()
        if not theme:
            return False
        self.outline.themes.append(theme)
        return True

    def delete_theme(self, index: int):
        if not 0 <= index < len(self.outline.themes):
            raise ValidationError(f"No theme at position {index}")
        del self.outline.themes[index]

    # ---- Characters ----

    def add_character(self, name: str, role: str, description: str = "") -> bool:
        name = (name or "").strip()
        role = (role or "").strip()
        if not name or not role:
            return False
        self.outline.characters.append(
            OutlineCharacter(name=name, role=role, description=description or "")
        )
        return True

    def update_character(self, index: int, **fields):
        if not 0 <= index < len(self.outline.characters):
            raise ValidationError(f"No character at position {index}")
        character = self.outline.characters[index]
        for key in ("name", "role", "description"):
            if key in fields and fields[key] is not None:
                setattr(character, key, fields[key])

    def delete_character(self, index: int):
        if not 0 <= index < len(self.outline.characters):
            raise ValidationError(f"No character at position {index}")
        del self.outline.characters[index]

    # ---- Chapters ----

    def update_chapter(self, number: int, **fields) -> ChapterOutline:
        """Update title, summary or word_count of the chapter with this number."""
        chapter = self.outline.get_chapter(number)
        if chapter is None:
            raise NotFoundError("Chapter", number)
        if fields.get("title") is not None:
            chapter.title = fields["title"]
        if fields.get("summary") is not None:
            chapter.summary = fields["summary"]
        if fields.get("word_count") is not None:
            chapter.word_count = int(fields["word_count"])
        return chapter

    def add_chapter(self) -> ChapterOutline:
        """Append a placeholder chapter.

        Its word count is an even share of the outline's stored total, which
        is left unchanged.
        """
        count = len(self.outline.chapters) + 1
        chapter = ChapterOutline(
            number=count,
            title=f"Chapter {count}",
            summary=NEW_CHAPTER_SUMMARY,
            word_count=self.outline.total_word_count // count,
        )
        self.outline.chapters.append(chapter)
        return chapter

    def delete_chapter(self, index: int) -> bool:
        """Remove the chapter at a list position; the last chapter is kept."""
        if len(self.outline.chapters) <= 1:
            return False
        if not 0 <= index < len(self.outline.chapters):
            raise ValidationError(f"No chapter at position {index}")
        del self.outline.chapters[index]
        self._renumber()
        return True

    def move_chapter(self, index: int, direction: str) -> bool:
        """Swap a chapter with its neighbour; 'up' or 'down'. No-op at the edges."""
        if direction not in ("up", "down"):
            raise ValidationError("direction must be 'up' or 'down'")
        chapters = self.outline.chapters
        target = index - 1 if direction == "up" else index + 1
        if not 0 <= index < len(chapters) or not 0 <= target < len(chapters):
            return False
        chapters[index], chapters[target] = chapters[target], chapters[index]
        self._renumber()
        return True


class OutlineHistory:
    """Named outline snapshots for one user."""

    def __init__(self, db: Database, user_id: str):
        self.db = db
        self.user_id = user_id

    def save(self, outline: BookOutline, title: Optional[str] = None,
             config: Optional[dict] = None) -> SavedOutline:
        name = (title or outline.title or "").strip()
        if not name:
            raise ValidationError("Missing required fields: title, outline")
        saved = self.db.save_outline(self.user_id, name, outline, config)
        logger.info("Saved outline %d '%s' for user %s", saved.id, name, self.user_id)
        return saved

    def list_saved(self) -> list[SavedOutline]:
        return self.db.get_user_outlines(self.user_id)

    def load(self, outline_id: int) -> SavedOutline:
        """Fetch a snapshot owned by this user."""
        saved = self.db.get_saved_outline(outline_id)
        if saved is None or saved.user_id != self.user_id:
            raise NotFoundError("Outline", outline_id)
        return saved

    def delete(self, outline_id: int):
        if not self.db.delete_outline(outline_id, self.user_id):
            raise NotFoundError("Outline", outline_id)
        logger.info("Deleted outline %d for user %s", outline_id, self.user_id)
