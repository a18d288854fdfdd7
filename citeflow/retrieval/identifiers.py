"""Identifier resolution: fill DOI, then PMID/PMCID, then PMCID via web search."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

import httpx
import ollama

from citeflow.agents import pmcid_finder
from citeflow.core.config import ResolverConfig
from citeflow.core.errors import SourceUnavailable
from citeflow.core.events import EventRecorder
from citeflow.core.models import UNKNOWN_TITLE, IdentifierSet, ResolutionMetadata
from citeflow.retrieval.race import elapsed_ms
from citeflow.search import crossref, idconv

logger = logging.getLogger(__name__)

STAGE = "identifiers"

T = TypeVar("T")


async def resolve_identifiers(
    metadata: ResolutionMetadata,
    identifiers: IdentifierSet | None,
    *,
    client: httpx.AsyncClient,
    config: ResolverConfig,
    recorder: EventRecorder,
    ollama_client: ollama.AsyncClient | None = None,
) -> IdentifierSet:
    """Return the most complete IdentifierSet obtainable.

    Steps run in order, each only for the gaps left by the previous one:
      1. no DOI    → Crossref lookup (top hit only), unless the metadata
                     is only the unknown-title sentinel
      2. DOI       → PMC ID converter for PMID + PMCID
      3. no PMCID  → web-search PMCID finder
    A failing step leaves its field absent; known fields are never replaced.
    """
    ids = (identifiers or IdentifierSet()).model_copy()
    if ids.is_complete:
        logger.debug("Identifiers already complete: %s", ids)
        return ids

    # Step 1: DOI from metadata
    if not ids.doi and not _searchable(metadata):
        recorder.record(STAGE, crossref.SOURCE, "skipped", detail="no usable metadata")
    elif not ids.doi:
        doi = await _attempt(
            crossref.SOURCE,
            lambda: crossref.lookup_doi(client, metadata, config),
            config.http.timeout_seconds,
            recorder,
        )
        ids = ids.merge(IdentifierSet(doi=doi))

    # Step 2: PMID / PMCID from DOI
    if ids.doi and not (ids.pmid and ids.pmcid):
        doi = ids.doi
        converted = await _attempt(
            idconv.SOURCE,
            lambda: idconv.convert_doi(client, doi, config),
            config.http.timeout_seconds,
            recorder,
        )
        ids = ids.merge(converted)

    # Step 3: PMCID via web search
    if ids.doi and not ids.pmcid:
        if not config.ai_search.enabled:
            recorder.record(STAGE, pmcid_finder.SOURCE, "skipped", detail="AI search disabled")
        else:
            doi = ids.doi
            pmcid = await _attempt(
                pmcid_finder.SOURCE,
                lambda: pmcid_finder.find_pmcid(doi, metadata, config, ollama_client),
                config.ai_search.timeout_seconds,
                recorder,
            )
            ids = ids.merge(IdentifierSet(pmcid=pmcid))

    logger.info("Resolved identifiers: doi=%s pmid=%s pmcid=%s", ids.doi, ids.pmid, ids.pmcid)
    return ids


def _searchable(metadata: ResolutionMetadata) -> bool:
    """A sentinel title alone would match an arbitrary Crossref record."""
    return metadata.title != UNKNOWN_TITLE or bool(metadata.author or metadata.year)


async def _attempt(
    source: str,
    call: Callable[[], Awaitable[T]],
    timeout: float,
    recorder: EventRecorder,
) -> T | None:
    """Run one lookup; any failure is recorded and becomes None."""
    start = time.perf_counter()
    try:
        value = await asyncio.wait_for(call(), timeout=timeout)
    except asyncio.TimeoutError:
        recorder.record(STAGE, source, "timeout", elapsed_ms(start))
        return None
    except SourceUnavailable as exc:
        recorder.record(STAGE, source, "error", elapsed_ms(start), exc.reason)
        return None
    except Exception as exc:
        logger.error("Identifier lookup %s failed unexpectedly: %r", source, exc)
        recorder.record(STAGE, source, "error", elapsed_ms(start), repr(exc))
        return None

    recorder.record(STAGE, source, "hit" if value else "miss", elapsed_ms(start))
    return value or None
