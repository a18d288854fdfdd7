"""Normalize markup-formatted payloads (JATS / PubMed XML) to plain text."""

import html
import re

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def strip_markup(payload: str | None) -> str:
    """Drop tags, unescape entities and collapse whitespace."""
    if not payload:
        return ""
    text = _TAG_RE.sub(" ", payload)
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def collapse_whitespace(text: str | None) -> str:
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def meets_threshold(text: str | None, min_chars: int) -> bool:
    """True when normalized text is long enough to count as content."""
    return bool(text) and len(text) >= min_chars
