"""Regex heuristics that turn a raw citation string into metadata + identifiers."""

import logging
import re

from citeflow.core.errors import MalformedIdentifier
from citeflow.core.models import (
    UNKNOWN_TITLE,
    IdentifierSet,
    ParsedCitation,
    ResolutionMetadata,
)

logger = logging.getLogger(__name__)

# ── Identifier Patterns ──────────────────────────────────────────────

_DOI_RE = re.compile(r"\b10\.\d{4,9}/[^\s\"<>]+", re.IGNORECASE)
_DOI_TRAILING = ".,;:]}>'\""
_PMID_RE = re.compile(r"\bPMID\s*:?\s*(\d{1,9})\b", re.IGNORECASE)
_PMCID_RE = re.compile(r"\bPMC\d+\b", re.IGNORECASE)
_URL_RE = re.compile(r"https?://\S+", re.IGNORECASE)

# ── Metadata Patterns ────────────────────────────────────────────────

_PAREN_YEAR_RE = re.compile(r"\((\d{4})[a-z]?\)")
_BARE_YEAR_RE = re.compile(r"\b((?:19|20)\d{2})\b")
_NUMBERING_RE = re.compile(r"^\s*(?:\[\d+\]|\d+[.)])\s+")
_AUTHOR_YEAR_RE = re.compile(
    r"^(?P<authors>.+?)\s*\(\d{4}[a-z]?\)\.?\s*(?P<title>.+?[.?!])(?:\s+|$)(?P<rest>.*)$"
)
_VANCOUVER_RE = re.compile(
    r"^(?P<authors>[^.]+?)\.\s+(?P<title>.+?[.?!])(?:\s+|$)(?P<rest>.*)$"
)
_SURNAME_INITIALS_RE = re.compile(
    r"^([A-Z][\w'\-]+(?:\s[A-Z][\w'\-]+)*),\s*((?:[A-Z]\.\s?-?)+)"
)
_ET_AL_RE = re.compile(r",?\s*et al\.?", re.IGNORECASE)


# ── Identifier Normalization ─────────────────────────────────────────


def extract_doi(text: str | None) -> str | None:
    """First DOI in text, with trailing punctuation stripped."""
    if not text:
        return None
    match = _DOI_RE.search(text)
    if not match:
        return None
    doi = match.group(0).rstrip(_DOI_TRAILING)
    # a closing paren belongs to the DOI only when it is balanced inside it
    while doi.endswith(")") and doi.count(")") > doi.count("("):
        doi = doi[:-1].rstrip(_DOI_TRAILING)
    return doi or None


def extract_pmid(text: str | None) -> str | None:
    if not text:
        return None
    match = _PMID_RE.search(text)
    return match.group(1) if match else None


def normalize_pmcid(value: str | None) -> str:
    """Return the canonical upper-case PMCID found in value.

    Raises MalformedIdentifier when value holds no PMC\\d+ token.
    """
    match = _PMCID_RE.search(value or "")
    if not match:
        raise MalformedIdentifier(f"Not a PMCID: {value!r}")
    return "PMC" + match.group(0)[3:]


def extract_pmcid(text: str | None) -> str | None:
    try:
        return normalize_pmcid(text)
    except MalformedIdentifier:
        return None


def doi_url(doi: str | None) -> str | None:
    return f"https://doi.org/{doi}" if doi else None


# ── Public API ───────────────────────────────────────────────────────


def parse_citation(raw: str) -> ParsedCitation:
    """Best-effort parse of a citation in author-year, Vancouver or bare-DOI form.

    Missing fields stay None. Never raises; on failure returns the
    sentinel title with nothing else set.
    """
    try:
        return _parse(raw or "")
    except Exception as exc:  # heuristics must not break resolution
        logger.warning("Citation parsing failed: %s", exc)
        return ParsedCitation()


def _parse(raw: str) -> ParsedCitation:
    text = " ".join(raw.split())
    identifiers = IdentifierSet(
        doi=extract_doi(text),
        pmid=extract_pmid(text),
        pmcid=extract_pmcid(text),
    )

    # Identifiers and URLs are noise for year/title detection
    body = _URL_RE.sub(" ", text)
    body = _DOI_RE.sub(" ", body)
    body = _PMID_RE.sub(" ", body)
    body = _PMCID_RE.sub(" ", body)
    body = re.sub(r"\bdoi\s*:?\s*", " ", body, flags=re.IGNORECASE)
    body = _NUMBERING_RE.sub("", " ".join(body.split()))

    year = _extract_year(body)

    authors = title = rest = None
    match = _AUTHOR_YEAR_RE.match(body) or _VANCOUVER_RE.match(body)
    if match:
        authors = match.group("authors")
        title = match.group("title")
        rest = match.group("rest")

    metadata = ResolutionMetadata(
        title=_clean_title(title) or UNKNOWN_TITLE,
        author=_first_author(authors),
        year=year,
        journal=_journal_from(rest),
    )
    return ParsedCitation(metadata=metadata, identifiers=identifiers)


# ── Field Helpers ────────────────────────────────────────────────────


def _extract_year(body: str) -> int | None:
    match = _PAREN_YEAR_RE.search(body) or _BARE_YEAR_RE.search(body)
    return int(match.group(1)) if match else None


def _first_author(authors: str | None) -> str | None:
    if not authors:
        return None
    authors = _ET_AL_RE.sub("", authors).strip(" ,;")
    if not authors:
        return None

    match = _SURNAME_INITIALS_RE.match(authors)
    if match:
        return f"{match.group(1)}, {match.group(2).strip()}"

    first = re.split(r"\s*(?:,|;|&|\band\b)\s*", authors, maxsplit=1)[0]
    return first.strip(" .") or None


def _clean_title(title: str | None) -> str | None:
    if not title:
        return None
    title = title.strip().rstrip(".").strip()
    return title or None


def _journal_from(rest: str | None) -> str | None:
    """Journal name: leading segment of what follows the title."""
    if not rest:
        return None
    segment = re.split(r"[.;]\s|[.;]$|,\s*\d|\s\d", rest.strip(), maxsplit=1)[0]
    segment = segment.strip(" .,;:")
    if not segment or segment[0].isdigit():
        return None
    return segment
