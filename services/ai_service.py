"""AI service: outline and chapter generation against the configured LLM."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from config.exceptions import LLMError, LLMResponseParseError, ValidationError
from config.settings import Settings
from models.outline import BookOutline, OutlineCharacter
from services.base_service import BaseService
from tools.llm_client import LLMClient
from tools.text_utils import count_words, strip_end_marker

logger = logging.getLogger(__name__)

# Target words per length category
LENGTH_TARGET_WORDS = {
    "micro": 10000,
    "novella": 20000,
    "short-novel": 30000,
    "short": 50000,
    "medium": 80000,
    "long": 120000,
    "epic": 150000,
}
DEFAULT_TARGET_WORDS = 80000
DEFAULT_CHAPTER_COUNT = 10

# Continuity context handed to each chapter of a full book
PREVIOUS_CONTEXT_CHAPTERS = 2
PREVIOUS_CONTEXT_CHARS = 500

API_KEY_ERROR = "Invalid or missing API key. Please check your environment variables."


@dataclass
class BookGenerationConfig:
    """Everything the outline prompt needs, already flattened from the studio form."""
    author: str = ""
    genre: str = ""
    tone: str = ""
    audience: str = ""
    description: str = ""
    chapters: int = DEFAULT_CHAPTER_COUNT
    length: str = "medium"
    title: Optional[str] = None
    custom_instructions: str = ""
    is_non_fiction: bool = False
    custom_characters: list[dict] = field(default_factory=list)
    source_book: Optional[dict] = None
    outline_model: Optional[str] = None
    chapter_model: Optional[str] = None

    @property
    def target_words(self) -> int:
        return LENGTH_TARGET_WORDS.get(self.length, DEFAULT_TARGET_WORDS)

    @property
    def words_per_chapter(self) -> int:
        return self.target_words // (self.chapters or DEFAULT_CHAPTER_COUNT)

    @property
    def custom_title(self) -> str:
        return (self.title or "").strip()


def _describe_character(c: dict) -> str:
    description = c.get("description") or ""
    traits = c.get("traits") or ""
    return f"{description} | Key traits: {traits}" if traits else description


def _remap_outline_error(e: Exception) -> str:
    message = str(e)
    if "API key" in message:
        return API_KEY_ERROR
    if "quota" in message:
        return "API quota exceeded. Please check your usage limits."
    if isinstance(e, LLMResponseParseError) or "JSON" in message:
        return "Failed to parse AI response as JSON. Please try again."
    return f"Failed to generate book outline: {message}"


class AIService(BaseService):
    """Generates outlines and chapters; model selection is per call."""

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)
        self._outline_template = self._load_prompt("outline")
        self._chapter_template = self._load_prompt("chapter")

    def resolve_model(self, model: Optional[str], purpose: str) -> str:
        return model or self.llm.default_model(purpose)

    def _build_outline_prompt(self, config: BookGenerationConfig) -> tuple[str, str]:
        kind = "non-fiction" if config.is_non_fiction else "fiction"
        title = config.custom_title

        source_context = ""
        if config.source_book:
            source_context = (
                f"\nSource Book for Inspiration: \"{config.source_book.get('title', '')}\" "
                f"by {config.source_book.get('author', '')}\n"
                f"Description: {config.source_book.get('description', '')}\n\n"
                "Note: Create something entirely original inspired by this work, not a copy."
            )

        title_instruction = ""
        if title:
            title_instruction = (
                f"\nIMPORTANT - Use this EXACT title: \"{title}\"\n"
                "Do NOT create a different title."
            )

        character_context = ""
        if config.custom_characters and not config.is_non_fiction:
            lines = [
                f"- {c.get('name', '')} ({c.get('role', '')}): {_describe_character(c)}"
                for c in config.custom_characters
            ]
            character_context = (
                "\nIMPORTANT - Use these EXACT characters in the outline:\n"
                + "\n".join(lines)
                + "\n\nDo NOT create new main characters. Use the characters listed above."
            )

        if title:
            title_line = f"- Use the exact title provided above: \"{title}\""
        else:
            title_line = "- An engaging, informative title" if config.is_non_fiction else "- An engaging title"

        if config.custom_characters:
            character_line = "- Use the EXACT characters provided above (do not create new main characters)"
        else:
            character_line = "- Main characters (name, role, brief description)"

        system_prompt = self._extract_section(self._outline_template, f"System Prompt ({kind})")
        user_prompt = self._extract_section(
            self._outline_template, f"Outline Instructions ({kind})"
        ).format(
            genre=config.genre,
            num_chapters=config.chapters or DEFAULT_CHAPTER_COUNT,
            author=config.author,
            tone=config.tone,
            audience=config.audience,
            description=config.description,
            source_context=source_context,
            title_instruction=title_instruction,
            character_context=character_context,
            custom_instructions=(
                f"\nInstructions: {config.custom_instructions}" if config.custom_instructions else ""
            ),
            title_line=title_line,
            character_line=character_line,
            title_json=f"\"{title}\"" if title else "\"book title\"",
            words_per_chapter=config.words_per_chapter,
        )
        return system_prompt, user_prompt

    async def generate_book_outline(self, config: BookGenerationConfig) -> tuple[BookOutline, str]:
        """Generate a structured outline.

        Returns:
            (outline, model id used).

        Raises:
            LLMError: With a user-facing message; the cause is chained.
        """
        model = None
        try:
            model = self.resolve_model(config.outline_model, "outline")
            logger.info(
                "Starting outline generation with model %s (genre=%s, chapters=%d, length=%s)",
                model, config.genre, config.chapters, config.length,
            )
            system_prompt, user_prompt = self._build_outline_prompt(config)
            data = await self.llm.chat_json(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                model=model,
                temperature=self.settings.outline_temperature,
            )
        except LLMError as e:
            logger.error("Error generating book outline: %s", e)
            raise LLMError(_remap_outline_error(e), {"model": model} if model else None) from e

        outline = BookOutline.from_dict(data)
        if config.custom_title:
            outline.title = config.custom_title
        if config.custom_characters and not config.is_non_fiction:
            outline.characters = [
                OutlineCharacter(
                    name=c.get("name", ""),
                    role=c.get("role", ""),
                    description=_describe_character(c),
                )
                for c in config.custom_characters
            ]
        if not outline.author:
            outline.author = config.author

        logger.info("Generated outline '%s' with %d chapters", outline.title, len(outline.chapters))
        return outline, model

    async def generate_chapter(
        self,
        outline: BookOutline,
        chapter_number: int,
        previous_chapters: Optional[str] = None,
        model: Optional[str] = None,
    ) -> dict:
        """Write one chapter of an outline.

        Returns:
            Dict with keys: title, content, word_count.
        """
        chapter = outline.get_chapter(chapter_number)
        if chapter is None:
            raise ValidationError(f"Chapter {chapter_number} not found in outline")

        kind = "non-fiction" if outline.is_non_fiction else "fiction"
        context = ""
        if previous_chapters:
            context = (
                f"\nPrevious chapters summary:\n{previous_chapters}\n\n"
                "Maintain continuity from previous chapters."
            )
        characters = "\n".join(
            f"- {c.name} ({c.role}): {c.description}" for c in outline.characters
        ) or "None specified"

        system_prompt = self._extract_section(
            self._chapter_template, f"System Prompt ({kind})"
        ).format(genre=outline.genre)
        user_prompt = self._extract_section(
            self._chapter_template, f"Chapter Instructions ({kind})"
        ).format(
            number=chapter.number,
            book_title=outline.title,
            author=outline.author,
            chapter_title=chapter.title,
            summary=chapter.summary,
            word_count=chapter.word_count,
            genre=outline.genre,
            characters=characters,
            themes=", ".join(outline.themes) or "General themes",
            context=context,
        )

        model = self.resolve_model(model, "chapter")
        logger.info("Generating chapter %d with model %s", chapter_number, model)
        try:
            raw = await self.llm.chat(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                model=model,
                temperature=self.settings.chapter_temperature,
            )
        except LLMError as e:
            logger.error("Error generating chapter %d: %s", chapter_number, e)
            raise LLMError(f"Failed to generate chapter {chapter_number}", {"model": model}) from e

        content = strip_end_marker(raw)
        word_count = count_words(content)
        logger.info("Generated chapter %d: %d words", chapter_number, word_count)
        return {"title": chapter.title, "content": content, "word_count": word_count}

    async def generate_full_book(self, outline: BookOutline, model: Optional[str] = None) -> list[dict]:
        """Write every chapter of an outline in order.

        Each chapter sees the opening of the two chapters before it.

        Returns:
            One dict per chapter, as returned by generate_chapter.
        """
        total = len(outline.chapters)
        chapters: list[dict] = []
        previous = ""
        for number in range(1, total + 1):
            logger.info("Generating chapter %d/%d of '%s'", number, total, outline.title)
            chapters.append(await self.generate_chapter(outline, number, previous, model))
            previous = "\n\n".join(
                f"Chapter {ch['title']}: {ch['content'][:PREVIOUS_CONTEXT_CHARS]}..."
                for ch in chapters[-PREVIOUS_CONTEXT_CHAPTERS:]
            )
        return chapters
