"""Outline, chapter and full book generation endpoints."""

import logging

from fastapi import APIRouter, Body, Depends

from api.dependencies import get_ai_service, get_book_service, get_db
from api.errors import error_response
from config.exceptions import AuthorizationError, LLMError, ValidationError
from models.database import Database
from models.outline import BookOutline
from services.ai_service import AIService
from services.book_service import BookService
from services.outline_builder import build_generation_config, validate_outline_request
from services.user_service import can_generate_book

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/generate", tags=["generate"])


def _hint_for(message: str) -> str:
    if "API key" in message:
        return "Set OPENAI_API_KEY or OPENROUTER_API_KEY in the environment."
    return ""


# (substring of the failure text, error, details); first match wins
BOOK_FAILURES = [
    ("quota", "OpenAI API quota exceeded", "Please check your OpenAI billing and usage limits."),
    ("rate limit", "Rate limit exceeded", "Too many requests. Please wait a few minutes and try again."),
    ("429", "Rate limit exceeded", "Too many requests. Please wait a few minutes and try again."),
    ("API key", "API key error", "Invalid or missing OpenAI API key."),
    ("timeout", "Generation timeout", "Book generation took too long. Try generating fewer chapters."),
]


def _describe_book_failure(e: LLMError) -> tuple[str, str]:
    text = str(e.__cause__ or e)
    for needle, error, details in BOOK_FAILURES:
        if needle in text:
            return error, details
    return "Failed to generate book", text


@router.post("/outline")
async def generate_outline(
    body: dict = Body(default={}),
    db: Database = Depends(get_db),
    ai: AIService = Depends(get_ai_service),
):
    user_id, config = validate_outline_request(body)
    reference_books = body.get("referenceBooks") or []
    generation_config = build_generation_config(config, reference_books, body.get("modelId"))

    db.ensure_demo_user(user_id)
    logger.info("Generating outline for: %s", generation_config.title)

    try:
        outline, model_used = await ai.generate_book_outline(generation_config)
    except LLMError as e:
        logger.error("Error generating outline: %s", e.message)
        return error_response(
            500, "Failed to generate outline", details=e.message, hint=_hint_for(e.message),
        )

    return {"success": True, "outline": outline.to_dict(), "modelUsed": model_used}


@router.post("/chapter")
async def generate_chapter(
    body: dict = Body(default={}),
    ai: AIService = Depends(get_ai_service),
):
    outline_data = body.get("outline")
    chapter_number = body.get("chapterNumber")
    if not isinstance(outline_data, dict) or not chapter_number:
        raise ValidationError("Missing required fields: outline, chapterNumber")
    try:
        chapter_number = int(chapter_number)
    except (TypeError, ValueError) as e:
        raise ValidationError("chapterNumber must be a number") from e

    outline = BookOutline.from_dict(outline_data)
    try:
        result = await ai.generate_chapter(
            outline,
            chapter_number,
            previous_chapters=body.get("previousChaptersContext"),
            model=body.get("modelId"),
        )
    except LLMError as e:
        cause = str(e.__cause__ or e)
        return error_response(
            500, e.message, details=cause, hint=_hint_for(cause),
        )

    return {
        "success": True,
        "chapterNumber": chapter_number,
        "title": result["title"],
        "content": result["content"],
        "wordCount": result["word_count"],
    }


@router.post("/book")
async def generate_book(
    body: dict = Body(default={}),
    db: Database = Depends(get_db),
    ai: AIService = Depends(get_ai_service),
    books: BookService = Depends(get_book_service),
):
    user_id = body.get("userId")
    outline_data = body.get("outline")
    config = body.get("config")
    if not user_id or not outline_data or not config:
        raise ValidationError("Missing required fields: userId, outline, config")
    if not isinstance(outline_data, dict) or not isinstance(config, dict):
        raise ValidationError("outline and config must be objects")
    user_id = str(user_id)

    db.ensure_demo_user(user_id)
    quota = can_generate_book(db, user_id)
    if not quota.allowed:
        raise AuthorizationError(quota.reason or "Book limit reached")

    outline = BookOutline.from_dict(outline_data)
    if not outline.chapters:
        raise ValidationError("Outline has no chapters")
    logger.info("Starting book generation: %s (%d chapters)", outline.title, len(outline.chapters))

    try:
        chapters = await ai.generate_full_book(outline, model=body.get("modelId"))
    except LLMError as e:
        logger.error("Error generating book: %s", e)
        error, details = _describe_book_failure(e)
        return error_response(500, error, details=details)

    book = books.save_generated_book(user_id, outline, config, chapters)
    return {
        "success": True,
        "book": {
            "id": book.id,
            "title": book.title,
            "author": book.author,
            "chapters": len(chapters),
            "wordCount": book.metadata["wordCount"],
        },
    }
