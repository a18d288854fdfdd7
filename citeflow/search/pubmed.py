"""PubMed abstract by PMID: efetch MEDLINE text parsed with Biopython."""

import io
import logging

import httpx
from Bio import Medline

from citeflow.core.config import ResolverConfig
from citeflow.core.models import SourceResult
from citeflow.parsers.markup import collapse_whitespace, meets_threshold
from citeflow.search.http import get_text, ncbi_params

logger = logging.getLogger(__name__)

SOURCE = "pubmed"
_EFETCH_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/efetch.fcgi"


# ── Public API ───────────────────────────────────────────────────────


async def fetch_abstract(
    client: httpx.AsyncClient,
    pmid: str,
    config: ResolverConfig,
) -> SourceResult:
    """Abstract for a PMID, or NotFound when the record has none."""
    params = ncbi_params(config, db="pubmed", id=pmid, rettype="medline", retmode="text")
    medline = await get_text(client, _EFETCH_URL, source=SOURCE, params=params)

    abstract = parse_medline_abstract(medline)
    if not meets_threshold(abstract, config.thresholds.min_abstract_chars):
        return SourceResult.not_found(SOURCE)

    logger.info("PubMed abstract for PMID %s: %d chars", pmid, len(abstract))
    return SourceResult.abstract(abstract, SOURCE)


# ── Record Parser ────────────────────────────────────────────────────


def parse_medline_abstract(medline_text: str | None) -> str | None:
    """Return the AB field of the first MEDLINE record in the payload."""
    if not medline_text or not medline_text.strip():
        return None
    for rec in Medline.parse(io.StringIO(medline_text)):
        abstract = collapse_whitespace(rec.get("AB"))
        if abstract:
            return abstract
    return None
