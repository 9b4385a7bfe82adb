"""Input sanitization for free-text fields and search terms."""

import html
import re


def sanitize_text(value: str | None) -> str | None:
    """Escape HTML entities so stored text renders literally in the UI."""
    if not value:
        return value
    return html.escape(value, quote=True)


def strip_control_chars(value: str | None) -> str | None:
    """Remove non-printable control characters (except newline, tab)."""
    if not value:
        return value
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)


def clean_search_term(value: str | None) -> str:
    """Normalize a user-entered search term: drop control chars and trim."""
    return (strip_control_chars(value) or "").strip()
