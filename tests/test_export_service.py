"""Tests for book export rendering."""

import pytest

from config.exceptions import UnsupportedExportFormatError, ValidationError
from models.book import Book, Chapter
from models.enums import ExportFormat
from services.export_service import clean_chapter_content, export_book, parse_format


@pytest.fixture
def book():
    return Book(id=1, user_id="u1", title="The Lantern Keeper", author="Ada Lane")


@pytest.fixture
def chapters():
    return [
        Chapter(number=2, title="The Flood Bell", content="The bell rang at dusk."),
        Chapter(number=1, title="Low Tide", content="Chapter 1: Low Tide\n\nMira lit the lanterns."),
    ]


class TestCleanChapterContent:
    def test_strips_number_and_title_heading(self):
        ch = Chapter(number=1, title="Low Tide", content="Chapter 1: Low Tide\n\nMira lit the lanterns.")
        assert clean_chapter_content(ch) == "Mira lit the lanterns."

    def test_strips_number_only_heading(self):
        ch = Chapter(number=4, title="Salt", content="Chapter 4 - The rain began.")
        assert clean_chapter_content(ch) == "The rain began."

    def test_strips_bare_title_line(self):
        ch = Chapter(number=2, title="The Flood Bell", content="The Flood Bell\nIt rang.")
        assert clean_chapter_content(ch) == "It rang."

    def test_heading_only_becomes_empty(self):
        ch = Chapter(number=3, title="Salt and Ash", content="Chapter 3")
        assert clean_chapter_content(ch) == ""

    def test_plain_content_untouched(self):
        ch = Chapter(number=1, title="Low Tide", content="  Mira waited.  ")
        assert clean_chapter_content(ch) == "Mira waited."


class TestParseFormat:
    def test_case_insensitive(self):
        assert parse_format("HTML") == ExportFormat.HTML

    def test_invalid(self):
        with pytest.raises(ValidationError, match="Invalid format"):
            parse_format("rtf")


class TestExportBook:
    def test_text(self, book, chapters):
        result = export_book(book, chapters, ExportFormat.TXT)
        assert result.filename == "The_Lantern_Keeper.txt"
        assert result.mime_type == "text/plain"
        assert result.content.startswith("The Lantern Keeper\nby Ada Lane\n")
        assert result.content.index("Chapter 1: Low Tide") < result.content.index("Chapter 2: The Flood Bell")
        assert "Mira lit the lanterns." in result.content

    def test_markdown(self, book, chapters):
        result = export_book(book, chapters, ExportFormat.MD)
        assert result.content.startswith("# The Lantern Keeper\n### by Ada Lane")
        assert "## Chapter 2: The Flood Bell\n\nThe bell rang at dusk." in result.content

    def test_html_escapes(self, chapters):
        book = Book(id=2, title="Salt & <Ash>", author="Ada", cover_url="https://img.test/c.png")
        result = export_book(book, chapters, ExportFormat.HTML)
        assert result.mime_type == "text/html"
        assert "<title>Salt &amp; &lt;Ash&gt;</title>" in result.content
        assert 'class="cover-page"' in result.content
        assert result.filename == "Salt_Ash.html"

    @pytest.mark.parametrize("fmt", [ExportFormat.PDF, ExportFormat.DOCX, ExportFormat.EPUB])
    def test_binary_formats_unsupported(self, book, chapters, fmt):
        with pytest.raises(UnsupportedExportFormatError):
            export_book(book, chapters, fmt)
