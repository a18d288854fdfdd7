"""Web-search PMCID finder, used when the ID converter has no PMCID."""

import asyncio
import logging

import ollama

from citeflow.agents.web_search import OLLAMA_ERRORS, ask_with_web_context, build_ollama_client
from citeflow.core.config import ResolverConfig
from citeflow.core.errors import MalformedIdentifier
from citeflow.core.models import NOT_FOUND_TOKEN, ResolutionMetadata
from citeflow.parsers.citation_parser import normalize_pmcid

logger = logging.getLogger(__name__)

SOURCE = "ai_pmcid_finder"


async def find_pmcid(
    doi: str,
    metadata: ResolutionMetadata,
    config: ResolverConfig,
    client: ollama.AsyncClient | None = None,
) -> str | None:
    """PMCID for a DOI found via web search, upper-cased, or None."""
    if not config.ai_search.enabled:
        return None

    client = client or build_ollama_client(config)
    lines = [f"- DOI: {doi}"]
    if metadata.title:
        lines.append(f"- Title: {metadata.title}")
    if metadata.author:
        lines.append(f"- Author: {metadata.author}")
    if metadata.year:
        lines.append(f"- Year: {metadata.year}")

    prompt = f"""/no_think
Find the PubMed Central ID (PMCID) for this paper:
{chr(10).join(lines)}

Return ONLY the PMCID in the format "PMC1234567" (PMC followed by numbers).
If you cannot find a PMCID, respond with exactly "{NOT_FOUND_TOKEN}".
Do NOT include any explanation or additional text."""

    try:
        answer = await asyncio.wait_for(
            ask_with_web_context(
                client,
                f"{doi} PMCID PubMed Central",
                system="You look up identifiers in NCBI databases. Answer tersely.",
                prompt=prompt,
                config=config,
            ),
            timeout=config.ai_search.timeout_seconds,
        )
    except OLLAMA_ERRORS as exc:
        logger.warning("PMCID finder failed for %s: %s", doi, exc)
        return None

    if not answer or answer == NOT_FOUND_TOKEN:
        return None
    try:
        pmcid = normalize_pmcid(answer)
    except MalformedIdentifier:
        logger.info("PMCID finder returned no PMCID for %s: %r", doi, answer[:80])
        return None

    logger.info("PMCID finder found %s for %s", pmcid, doi)
    return pmcid
