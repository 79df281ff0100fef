"""Tools package: LLM client, text utilities, and JSON parsing."""

from tools.llm_client import LLMClient, parse_json_response, resolve_provider
from tools.text_utils import (
    count_words,
    strip_end_marker,
    sanitize_filename,
    sanitize_title,
)

__all__ = [
    "LLMClient",
    "parse_json_response",
    "resolve_provider",
    "count_words",
    "strip_end_marker",
    "sanitize_filename",
    "sanitize_title",
]
