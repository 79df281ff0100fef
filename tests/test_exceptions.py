"""Tests for the custom exception hierarchy."""

import pytest
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


class TestExceptionHierarchy:
    def test_all_inherit_from_book_studio_error(self):
        leaf_classes = [
            LLMError, LLMConfigurationError, LLMResponseParseError,
            DatabaseError, EventBusError, ValidationError,
            AuthenticationError, AuthorizationError, NotFoundError,
            JobStateError, ExportError, UnsupportedExportFormatError,
        ]
        for cls in leaf_classes:
            assert issubclass(cls, BookStudioError), f"{cls.__name__} is not a BookStudioError"

    def test_llm_subclasses(self):
        assert issubclass(LLMConfigurationError, LLMError)
        assert issubclass(LLMResponseParseError, LLMError)

    def test_unsupported_format_is_export_error(self):
        assert issubclass(UnsupportedExportFormatError, ExportError)


class TestExceptionMessages:
    def test_message_and_details(self):
        err = BookStudioError("boom", {"job_id": 3})
        assert err.message == "boom"
        assert str(err) == "boom (job_id=3)"

    def test_no_details(self):
        assert str(BookStudioError("plain")) == "plain"

    def test_not_found_default_message(self):
        err = NotFoundError("Job", 42)
        assert err.message == "Job not found"
        assert str(err) == "Job not found"
        assert err.resource_id == 42

    def test_not_found_custom_message(self):
        err = NotFoundError("Book", 1, "Book not found or could not be duplicated")
        assert str(err) == "Book not found or could not be duplicated"

    def test_authentication_default(self):
        assert AuthenticationError().message == "Unauthorized - Please sign in"

    def test_job_state_error(self):
        err = JobStateError(7, "completed")
        assert err.message == "Job 7 is already completed"
        assert err.details == {"job_id": 7, "status": "completed"}

    def test_parse_error_truncates_raw_response(self):
        err = LLMResponseParseError("bad json", raw_response="x" * 500)
        assert len(err.details["raw_response"]) == 200
        assert err.raw_response == "x" * 500

    def test_event_bus_error_records_event(self):
        err = EventBusError("down", "video/export.started")
        assert err.event_name == "video/export.started"

    def test_catch_as_base(self):
        with pytest.raises(BookStudioError):
            raise UnsupportedExportFormatError("pdf")
