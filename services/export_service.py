"""Render a book with its chapters into a downloadable text format."""

import html
import logging
import re
from dataclasses import dataclass

from config.exceptions import UnsupportedExportFormatError, ValidationError
from models.book import Book, Chapter
from models.enums import ExportFormat
from tools.text_utils import sanitize_filename

logger = logging.getLogger(__name__)

INVALID_FORMAT_ERROR = "Invalid format. Must be txt, md, html, pdf, docx, or epub"

MIME_TYPES = {
    ExportFormat.TXT: "text/plain",
    ExportFormat.MD: "text/markdown",
    ExportFormat.HTML: "text/html",
    ExportFormat.PDF: "application/pdf",
    ExportFormat.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ExportFormat.EPUB: "application/epub+zip",
}

_HTML_STYLE = """
        body { font-family: 'Georgia', serif; line-height: 1.6; max-width: 800px;
               margin: 0 auto; padding: 40px 20px; color: #333; }
        h1 { text-align: center; margin-bottom: 10px; }
        .author { text-align: center; font-style: italic; margin-bottom: 40px; color: #666; }
        .cover-page { page-break-after: always; text-align: center; margin: 100px 0; }
        .cover-page img { max-width: 100%; height: auto; }
        .chapter { page-break-before: always; margin-top: 60px; }
        .chapter-title { font-size: 24px; margin-bottom: 20px; }
        .chapter-content { text-align: justify; white-space: pre-line; }
"""


@dataclass
class ExportResult:
    content: str
    filename: str
    mime_type: str


def parse_format(value) -> ExportFormat:
    try:
        return ExportFormat(str(value).lower())
    except ValueError as e:
        raise ValidationError(INVALID_FORMAT_ERROR) from e


def clean_chapter_content(chapter: Chapter) -> str:
    """Drop a leading heading that repeats the chapter number or title."""
    cleaned = (chapter.content or "").strip()
    title = re.escape(chapter.title.strip()) if chapter.title.strip() else None
    patterns = [rf"^Chapter\s+{chapter.number}[:\s\-–—]*"]
    if title:
        patterns.insert(0, rf"^Chapter\s+{chapter.number}[:\s\-–—]*\n*{title}[\s.]*")
        patterns.append(rf"^{title}[:\s.]*\n")
    for pattern in patterns:
        cleaned = re.sub(pattern, "", cleaned, count=1, flags=re.IGNORECASE).strip()
    if cleaned.lower() in (chapter.title.strip().lower(), f"chapter {chapter.number}"):
        return ""
    return cleaned


def render_text(book: Book, chapters: list[Chapter]) -> str:
    parts = [f"{book.title}\nby {book.author or ''}\n\n{'=' * 50}\n\n"]
    for ch in chapters:
        parts.append(f"\nChapter {ch.number}: {ch.title}\n\n")
        parts.append(clean_chapter_content(ch) + "\n\n")
        parts.append("-" * 50 + "\n")
    return "".join(parts)


def render_markdown(book: Book, chapters: list[Chapter]) -> str:
    parts = [f"# {book.title}\n### by {book.author or ''}\n\n---\n\n"]
    for ch in chapters:
        parts.append(f"## Chapter {ch.number}: {ch.title}\n\n")
        parts.append(clean_chapter_content(ch) + "\n\n")
    return "".join(parts)


def render_html(book: Book, chapters: list[Chapter]) -> str:
    title = html.escape(book.title)
    author = html.escape(book.author or "")
    parts = [
        "<!DOCTYPE html>\n<html lang=\"en\">\n<head>\n"
        "    <meta charset=\"UTF-8\">\n"
        "    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1.0\">\n"
        f"    <title>{title}</title>\n    <style>{_HTML_STYLE}    </style>\n</head>\n<body>\n"
    ]
    if book.cover_url:
        parts.append(
            f"    <div class=\"cover-page\"><img src=\"{html.escape(book.cover_url, quote=True)}\" "
            f"alt=\"{title} Cover\" /></div>\n"
        )
    parts.append(f"    <h1>{title}</h1>\n    <p class=\"author\">by {author}</p>\n    <hr>\n")
    for ch in chapters:
        parts.append(
            "    <div class=\"chapter\">\n"
            f"        <h2 class=\"chapter-title\">Chapter {ch.number}: {html.escape(ch.title)}</h2>\n"
            f"        <div class=\"chapter-content\">{html.escape(clean_chapter_content(ch))}</div>\n"
            "    </div>\n"
        )
    parts.append("</body>\n</html>\n")
    return "".join(parts)


_RENDERERS = {
    ExportFormat.TXT: render_text,
    ExportFormat.MD: render_markdown,
    ExportFormat.HTML: render_html,
}


def export_book(book: Book, chapters: list[Chapter], export_format: ExportFormat) -> ExportResult:
    """Render a book.

    Raises:
        UnsupportedExportFormatError: For pdf, docx and epub.
    """
    renderer = _RENDERERS.get(export_format)
    if renderer is None:
        raise UnsupportedExportFormatError(export_format.value)
    ordered = sorted(chapters, key=lambda c: c.number)
    content = renderer(book, ordered)
    filename = f"{sanitize_filename(book.title)}.{export_format.value}"
    logger.info("Exported book %s as %s (%d chapters)", book.id, export_format.value, len(ordered))
    return ExportResult(content=content, filename=filename, mime_type=MIME_TYPES[export_format])
