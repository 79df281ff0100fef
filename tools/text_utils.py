"""Text utilities: word counting, chapter cleanup, filenames."""

import re

_END_MARKER_RE = re.compile(r"\n?\[END CHAPTER\]\s*$")


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    if not text:
        return 0
    return len(text.split())


def strip_end_marker(content: str) -> str:
    """Remove the trailing [END CHAPTER] marker and surrounding whitespace."""
    if not content:
        return ""
    return _END_MARKER_RE.sub("", content).strip()


def sanitize_filename(title: str, fallback: str = "book") -> str:
    """Turn a book title into a safe download filename stem."""
    stem = re.sub(r"[^A-Za-z0-9]+", "_", title or "").strip("_")
    return stem[:80] or fallback


_MARKDOWN_RE = re.compile(r"(\*\*|__|\*|_|`|^#+\s*)", re.MULTILINE)


def sanitize_title(title: str) -> str:
    """Strip wrapping quotes and markdown emphasis from a title, collapse spaces."""
    clean = (title or "").strip()
    clean = re.sub(r"^[\"']|[\"']$", "", clean)
    clean = _MARKDOWN_RE.sub("", clean)
    return re.sub(r"\s+", " ", clean).strip()
