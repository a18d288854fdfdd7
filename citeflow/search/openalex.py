"""OpenAlex abstract by DOI, rebuilt from the inverted index."""

import logging

import httpx
from pyalex import invert_abstract

from citeflow.core.config import ResolverConfig
from citeflow.core.models import SourceResult
from citeflow.parsers.markup import collapse_whitespace, meets_threshold
from citeflow.search.http import get_json

logger = logging.getLogger(__name__)

SOURCE = "openalex"
_WORKS_URL = "https://api.openalex.org/works"


# ── Public API ───────────────────────────────────────────────────────


async def fetch_abstract(
    client: httpx.AsyncClient,
    doi: str,
    config: ResolverConfig,
) -> SourceResult:
    """Abstract for a DOI, or NotFound when OpenAlex has no inverted index."""
    url = f"{_WORKS_URL}/https://doi.org/{doi}"
    headers = {}
    if config.contact.openalex_api_key:
        headers["Authorization"] = f"Bearer {config.contact.openalex_api_key}"
    params = {"mailto": config.contact.email} if config.contact.email else None

    work = await get_json(client, url, source=SOURCE, params=params, headers=headers)
    abstract = reconstruct_abstract((work or {}).get("abstract_inverted_index"))
    if not meets_threshold(abstract, config.thresholds.min_abstract_chars):
        return SourceResult.not_found(SOURCE)

    logger.info("OpenAlex abstract for %s: %d chars", doi, len(abstract))
    return SourceResult.abstract(abstract, SOURCE)


# ── Abstract Reconstruction ──────────────────────────────────────────


def reconstruct_abstract(inverted_index: dict | None) -> str | None:
    """Reassemble abstract text from an OpenAlex inverted index.

    OpenAlex stores abstracts as {word: [position, ...]} dicts.
    Returns None if the inverted index is empty or None.
    """
    if not inverted_index:
        return None
    return collapse_whitespace(invert_abstract(inverted_index)) or None
