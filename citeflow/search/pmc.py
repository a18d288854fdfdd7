"""US PubMed Central full text via E-utilities efetch (db=pmc)."""

import logging
import re

import httpx

from citeflow.core.config import ResolverConfig
from citeflow.core.models import SourceResult
from citeflow.parsers.markup import meets_threshold, strip_markup
from citeflow.search.http import get_text, ncbi_params

logger = logging.getLogger(__name__)

SOURCE = "pubmed_central"
_EFETCH_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/efetch.fcgi"
_MIN_RAW_CHARS = 100  # anything shorter is an empty articleset
_ERROR_RE = re.compile(r"<error>", re.IGNORECASE)


async def fetch_full_text(
    client: httpx.AsyncClient,
    pmcid: str,
    config: ResolverConfig,
) -> SourceResult:
    """Full text for a PMCID from NCBI; NCBI expects the numeric part only."""
    numeric = re.sub(r"^PMC", "", pmcid, flags=re.IGNORECASE)
    params = ncbi_params(config, db="pmc", id=numeric, retmode="xml")

    xml = await get_text(client, _EFETCH_URL, source=SOURCE, params=params)
    if not xml or len(xml) < _MIN_RAW_CHARS or _ERROR_RE.search(xml):
        return SourceResult.not_found(SOURCE)

    text = strip_markup(xml)
    if not meets_threshold(text, config.thresholds.min_content_chars):
        return SourceResult.not_found(SOURCE)

    logger.info("PMC full text for PMC%s: %d chars", numeric, len(text))
    return SourceResult.full_text(text, SOURCE)
