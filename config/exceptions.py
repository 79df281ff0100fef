"""Custom exception hierarchy for the book studio service."""

from typing import Optional


class BookStudioError(Exception):
    """Base exception for all book studio errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- LLM Errors ----

class LLMError(BookStudioError):
    """Base exception for LLM API errors."""


class LLMConfigurationError(LLMError):
    """No usable provider is configured for the requested model."""

    def __init__(self, message: str, model: Optional[str] = None):
        super().__init__(message, {"model": model} if model else None)
        self.model = model


class LLMResponseParseError(LLMError):
    """Failed to parse LLM response."""

    def __init__(self, message: str = "Failed to parse LLM response", raw_response: str = ""):
        details = {"raw_response": raw_response[:200]} if raw_response else {}
        super().__init__(message, details)
        self.raw_response = raw_response


# ---- Database Errors ----

class DatabaseError(BookStudioError):
    """Database operation failed."""


# ---- Event Bus Errors ----

class EventBusError(BookStudioError):
    """Publishing an event to the background job bus failed."""

    def __init__(self, message: str, event_name: str = ""):
        super().__init__(message, {"event": event_name} if event_name else None)
        self.event_name = event_name


# ---- Request Errors ----

class ValidationError(BookStudioError):
    """Input validation failed."""


class AuthenticationError(BookStudioError):
    """No acting user could be resolved for the request."""

    def __init__(self, message: str = "Unauthorized - Please sign in"):
        super().__init__(message)


class AuthorizationError(BookStudioError):
    """The acting user may not touch the requested resource."""


class NotFoundError(BookStudioError):
    """Requested record does not exist."""

    def __init__(self, resource: str, resource_id=None, message: str = ""):
        super().__init__(message or f"{resource} not found", {"id": resource_id} if resource_id is not None else None)
        self.resource = resource
        self.resource_id = resource_id

    def __str__(self) -> str:
        return self.message


# ---- Job Errors ----

class JobStateError(BookStudioError):
    """A job transition was requested from a state that does not allow it."""

    def __init__(self, job_id: int, status: str, message: str = ""):
        msg = message or f"Job {job_id} is already {status}"
        super().__init__(msg, {"job_id": job_id, "status": status})
        self.job_id = job_id
        self.status = status


# ---- Export Errors ----

class ExportError(BookStudioError):
    """Base exception for book export failures."""


class UnsupportedExportFormatError(ExportError):
    """Export format is recognised but not rendered by this service."""

    def __init__(self, export_format: str):
        super().__init__(
            f"Export to {export_format} is not available on this server",
            {"format": export_format},
        )
        self.export_format = export_format
