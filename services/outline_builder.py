"""Turn an outline request body into a BookGenerationConfig.

The request carries the studio configuration as nested camelCase JSON
(``basicInfo``, ``content``, ``writingStyle``, ...). Everything here is
pure so the endpoint stays a thin wrapper.
"""

import re
from typing import Optional

from config.exceptions import ValidationError
from models.enums import LengthCategory
from services.ai_service import DEFAULT_CHAPTER_COUNT, BookGenerationConfig
from tools.text_utils import sanitize_title

# (inclusive upper bound, category); anything larger is epic
LENGTH_BREAKPOINTS = [
    (10_000, LengthCategory.MICRO),
    (20_000, LengthCategory.NOVELLA),
    (40_000, LengthCategory.SHORT_NOVEL),
    (60_000, LengthCategory.SHORT),
    (90_000, LengthCategory.MEDIUM),
    (130_000, LengthCategory.LONG),
]

NON_FICTION_KEYWORDS = (
    "non-fiction", "nonfiction", "biography", "autobiography", "memoir",
    "history", "self-help", "self help", "business", "science", "technology",
    "philosophy", "psychology", "reference", "textbook", "education",
    "academic", "true crime", "cooking", "health", "fitness", "travel",
    "guide", "manual", "how-to", "politics", "economics", "religion",
    "spirituality", "art", "music", "photography", "sports", "nature",
    "environment",
)

FICTION_KEYWORDS = (
    "fiction", "novel", "fantasy", "sci-fi", "romance", "thriller",
    "mystery", "horror", "adventure", "detective", "dystopian",
)

_NON_FICTION_TOKEN_RE = re.compile(r"non-?fiction")


def get_length(target_word_count: int) -> LengthCategory:
    """Map a target word count to its length category (upper bounds inclusive)."""
    for upper, category in LENGTH_BREAKPOINTS:
        if target_word_count <= upper:
            return category
    return LengthCategory.EPIC


def reference_book_is_non_fiction(book: dict) -> bool:
    """Classify a reference book from its categories and genre.

    Explicit non-fiction keywords win only when no fiction keyword is
    present; mixed or unknown metadata counts as fiction.
    """
    categories = book.get("categories") or []
    if isinstance(categories, str):
        categories = [categories]
    text = " ".join([*(str(c).lower() for c in categories), str(book.get("genre") or "").lower()])

    has_non_fiction = any(k in text for k in NON_FICTION_KEYWORDS)
    # "non-fiction" contains "fiction"; drop it before looking for fiction markers
    fiction_text = _NON_FICTION_TOKEN_RE.sub(" ", text)
    has_fiction = any(k in fiction_text for k in FICTION_KEYWORDS)
    return has_non_fiction and not has_fiction


def is_non_fiction(genre: Optional[str], reference_books: Optional[list] = None) -> bool:
    """A book is non-fiction when its genre says so or any reference book is."""
    if _NON_FICTION_TOKEN_RE.search((genre or "").lower()):
        return True
    return any(
        reference_book_is_non_fiction(b) for b in reference_books or [] if isinstance(b, dict)
    )


def _format_reference_book(book: dict) -> str:
    authors = book.get("authors") or []
    if isinstance(authors, str):
        authors = [authors]
    return f"\"{book.get('title', '')}\" by {', '.join(authors)}"


def _character_lines(characters: dict) -> list[str]:
    lines = []
    for key in ("protagonist", "antagonist"):
        profile = characters.get(key)
        if isinstance(profile, dict) and profile.get("name"):
            lines.append(f"{key.title()}: {profile['name']} - {profile.get('description', '')}".rstrip(" -"))
    for profile in characters.get("supporting") or []:
        if isinstance(profile, dict) and profile.get("name"):
            lines.append(f"Supporting: {profile['name']} - {profile.get('description', '')}".rstrip(" -"))
    if characters.get("developmentPreference"):
        lines.append(f"Character Development: {characters['developmentPreference']}")
    return lines


def _section(config: dict, key: str) -> dict:
    """A nested config object; absent or null means empty."""
    value = config.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"config.{key} must be an object")
    return value


def build_custom_instructions(config: dict, reference_books: Optional[list] = None) -> str:
    """Assemble the free-text instruction block; empty entries are dropped."""
    style = _section(config, "writingStyle")
    content = _section(config, "content")
    plot = _section(config, "plot")

    lines = [
        f"Writing Style: {style['style']}" if style.get("style") else "",
        f"Point of View: {style['pov']}" if style.get("pov") else "",
        f"Tense: {style['tense']}" if style.get("tense") else "",
        f"Narrative Voice: {style['narrativeVoice']}" if style.get("narrativeVoice") else "",
        f"Book Structure: {content['bookStructure']}" if content.get("bookStructure") else "",
        f"Narrative Structure: {plot['narrativeStructure']}" if plot.get("narrativeStructure") else "",
        f"Pacing: {plot['pacing']}" if plot.get("pacing") else "",
    ]
    if isinstance(config.get("characters"), dict):
        lines.extend(_character_lines(config["characters"]))
    books = [b for b in reference_books or [] if isinstance(b, dict)]
    if books:
        lines.append("Reference Books: " + ", ".join(_format_reference_book(b) for b in books))
    lines.append(str(config.get("customInstructions") or ""))
    return "\n".join(line for line in lines if line)


def validate_outline_request(body: dict) -> tuple[str, dict]:
    """Check the required fields of an outline request.

    Returns:
        (user_id, config)

    Raises:
        ValidationError: With the client-facing message.
    """
    user_id = body.get("userId")
    config = body.get("config")
    if not user_id or not config or not isinstance(config, dict):
        raise ValidationError("Missing required fields: userId, config")
    basic = _section(config, "basicInfo")
    if not basic.get("title") or not basic.get("author"):
        raise ValidationError("Missing required fields: title, author")
    if not isinstance(basic["title"], str) or not isinstance(basic["author"], str):
        raise ValidationError("title and author must be strings")
    return str(user_id), config


def build_generation_config(
    config: dict,
    reference_books: Optional[list] = None,
    model_id: Optional[str] = None,
) -> BookGenerationConfig:
    """Flatten a studio configuration into the AI service's input."""
    basic = _section(config, "basicInfo")
    content = _section(config, "content")
    style = _section(config, "writingStyle")
    audience = _section(config, "audience")
    characters = config.get("characterList") or []
    if not isinstance(characters, list) or not all(isinstance(c, dict) for c in characters):
        raise ValidationError("config.characterList must be a list of objects")

    try:
        target_words = int(content.get("targetWordCount") or 0)
        num_chapters = int(content.get("numChapters") or DEFAULT_CHAPTER_COUNT)
    except (TypeError, ValueError) as e:
        raise ValidationError("targetWordCount and numChapters must be numbers") from e
    if num_chapters <= 0:
        raise ValidationError("numChapters must be positive")

    genre = basic.get("genre") or ""
    non_fiction = is_non_fiction(genre, reference_books)

    return BookGenerationConfig(
        title=sanitize_title(basic.get("title") or ""),
        author=basic.get("author") or "",
        genre=genre,
        tone=style.get("tone") or "",
        audience=audience.get("targetAudience") or "",
        description=content.get("description") or "",
        chapters=num_chapters,
        length=get_length(target_words).value,
        custom_instructions=build_custom_instructions(config, reference_books),
        is_non_fiction=non_fiction,
        custom_characters=[] if non_fiction else list(characters),
        outline_model=model_id or None,
    )
