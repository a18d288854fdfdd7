"""Crossref client: DOI lookup from title / author / year."""

import logging

import httpx

from citeflow.core.config import ResolverConfig
from citeflow.core.models import ResolutionMetadata
from citeflow.parsers.citation_parser import extract_doi
from citeflow.search.http import get_json

logger = logging.getLogger(__name__)

SOURCE = "crossref"
_WORKS_URL = "https://api.crossref.org/works"


async def lookup_doi(
    client: httpx.AsyncClient,
    metadata: ResolutionMetadata,
    config: ResolverConfig,
) -> str | None:
    """Top-ranked Crossref match for the metadata, or None.

    Only the first item is considered; lower-ranked hits are never used.
    """
    query = metadata.search_query()
    logger.info("Crossref DOI lookup: %s", query[:80])

    params = {"query": query, "rows": 1}
    if config.contact.email:
        params["mailto"] = config.contact.email

    data = await get_json(client, _WORKS_URL, source=SOURCE, params=params)
    items = ((data or {}).get("message") or {}).get("items") or []
    if not items:
        return None

    doi = extract_doi(items[0].get("DOI"))
    if doi:
        logger.info("Crossref found DOI %s", doi)
    return doi
