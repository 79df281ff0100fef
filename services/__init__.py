"""Services package: generation, outlines, books, jobs and accounts."""

from services.ai_service import AIService, BookGenerationConfig
from services.book_service import BookService
from services.event_bus import EventBus
from services.export_service import ExportResult, export_book
from services.job_service import JobService
from services.outline_builder import build_generation_config, get_length, validate_outline_request
from services.outline_editor import OutlineEditor, OutlineHistory

__all__ = [
    "AIService",
    "BookGenerationConfig",
    "BookService",
    "EventBus",
    "ExportResult",
    "export_book",
    "JobService",
    "build_generation_config",
    "get_length",
    "validate_outline_request",
    "OutlineEditor",
    "OutlineHistory",
]
