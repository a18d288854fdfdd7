"""Europe PMC full text (JATS XML) for open-access articles."""

import logging

import httpx

from citeflow.core.config import ResolverConfig
from citeflow.core.models import SourceResult
from citeflow.parsers.markup import meets_threshold, strip_markup
from citeflow.search.http import get_text

logger = logging.getLogger(__name__)

SOURCE = "europe_pmc"
_REST_BASE = "https://www.ebi.ac.uk/europepmc/webservices/rest"


async def fetch_full_text(
    client: httpx.AsyncClient,
    pmcid: str,
    config: ResolverConfig,
) -> SourceResult:
    """Full text for a PMCID; NotFound when unavailable or too short."""
    pmcid = pmcid if pmcid.upper().startswith("PMC") else f"PMC{pmcid}"
    url = f"{_REST_BASE}/{pmcid}/fullTextXML"

    xml = await get_text(client, url, source=SOURCE)
    text = strip_markup(xml)
    if not meets_threshold(text, config.thresholds.min_content_chars):
        return SourceResult.not_found(SOURCE)

    logger.info("Europe PMC full text for %s: %d chars", pmcid, len(text))
    return SourceResult.full_text(text, SOURCE)
