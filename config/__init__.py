"""Configuration package: settings, logging, and exceptions."""

from config.exceptions import (
    BookStudioError,
    LLMError,
    LLMConfigurationError,
    LLMResponseParseError,
    DatabaseError,
    EventBusError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    JobStateError,
    ExportError,
    UnsupportedExportFormatError,
)
from config.logging_config import setup_logging
from config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "BookStudioError",
    "LLMError",
    "LLMConfigurationError",
    "LLMResponseParseError",
    "DatabaseError",
    "EventBusError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "JobStateError",
    "ExportError",
    "UnsupportedExportFormatError",
]
