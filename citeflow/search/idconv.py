"""NCBI PMC ID Converter: DOI → PMID + PMCID in one call."""

import logging

import httpx

from citeflow.core.config import ResolverConfig
from citeflow.core.models import IdentifierSet
from citeflow.parsers.citation_parser import extract_pmcid
from citeflow.search.http import get_json, ncbi_params

logger = logging.getLogger(__name__)

SOURCE = "pmc_idconv"
_IDCONV_URL = "https://www.ncbi.nlm.nih.gov/pmc/utils/idconv/v1.0/"


async def convert_doi(
    client: httpx.AsyncClient,
    doi: str,
    config: ResolverConfig,
) -> IdentifierSet | None:
    """Look up PMID / PMCID for a DOI. None when NCBI has no record."""
    params = ncbi_params(config, ids=doi, format="json")
    data = await get_json(client, _IDCONV_URL, source=SOURCE, params=params)
    records = (data or {}).get("records") or []
    if not records:
        return None
    return parse_idconv_record(records[0])


def parse_idconv_record(record: dict) -> IdentifierSet | None:
    """Turn one idconv record into identifiers; error records yield None."""
    if record.get("status") == "error":
        logger.info("PMC converter: %s", record.get("errmsg", "no match"))
        return None

    pmid = record.get("pmid")
    ids = IdentifierSet(
        doi=record.get("doi") or None,
        pmid=str(pmid) if pmid else None,
        pmcid=extract_pmcid(record.get("pmcid")),
    )
    if not (ids.pmid or ids.pmcid):
        return None
    return ids
