"""Content stages: full-text race, abstract race, AI search fallback."""

import logging
import time
from typing import Awaitable, Callable

import httpx
import ollama

from citeflow.agents import web_search
from citeflow.core.config import ResolverConfig
from citeflow.core.events import EventRecorder
from citeflow.core.models import IdentifierSet, ResolutionMetadata, SourceResult
from citeflow.retrieval.race import Branch, elapsed_ms, first_positive
from citeflow.search import europepmc, openalex, pmc, pubmed

logger = logging.getLogger(__name__)

Fetcher = Callable[[httpx.AsyncClient, str, ResolverConfig], Awaitable[SourceResult]]


# ── Source Registries ────────────────────────────────────────────────


def full_text_sources() -> list[tuple[str, Fetcher]]:
    """Full-text repositories keyed on PMCID."""
    return [
        (europepmc.SOURCE, europepmc.fetch_full_text),
        (pmc.SOURCE, pmc.fetch_full_text),
    ]


def abstract_sources() -> list[tuple[str, str, Fetcher]]:
    """Abstract sources as (name, identifier field, fetcher)."""
    return [
        (pubmed.SOURCE, "pmid", pubmed.fetch_abstract),
        (openalex.SOURCE, "doi", openalex.fetch_abstract),
    ]


def _bind(fetcher: Fetcher, client: httpx.AsyncClient, key: str, config: ResolverConfig):
    return lambda: fetcher(client, key, config)


# ── Stage 1: Full Text ───────────────────────────────────────────────


async def full_text_race(
    ids: IdentifierSet,
    *,
    client: httpx.AsyncClient,
    config: ResolverConfig,
    recorder: EventRecorder,
    sources: list[tuple[str, Fetcher]] | None = None,
) -> SourceResult | None:
    """Race the full-text repositories on PMCID. No PMCID, no calls."""
    if not ids.pmcid:
        recorder.record("full_text", "*", "skipped", detail="no PMCID")
        return None

    branches: list[Branch] = [
        (name, _bind(fetcher, client, ids.pmcid, config))
        for name, fetcher in (sources if sources is not None else full_text_sources())
    ]
    return await first_positive(
        branches,
        stage="full_text",
        timeout=config.http.timeout_seconds,
        recorder=recorder,
    )


# ── Stage 2: Abstract ────────────────────────────────────────────────


async def abstract_race(
    ids: IdentifierSet,
    *,
    client: httpx.AsyncClient,
    config: ResolverConfig,
    recorder: EventRecorder,
    sources: list[tuple[str, str, Fetcher]] | None = None,
) -> SourceResult | None:
    """Race every abstract source whose identifier is known.

    Sources missing their key are skipped without a call; with no
    eligible source the stage is a no-op.
    """
    branches: list[Branch] = []
    for name, field, fetcher in sources if sources is not None else abstract_sources():
        key = getattr(ids, field)
        if not key:
            recorder.record("abstract", name, "skipped", detail=f"no {field.upper()}")
            continue
        branches.append((name, _bind(fetcher, client, key, config)))

    if not branches:
        return None
    return await first_positive(
        branches,
        stage="abstract",
        timeout=config.http.timeout_seconds,
        recorder=recorder,
    )


# ── Stage 3: AI Search ───────────────────────────────────────────────


async def ai_search_fallback(
    metadata: ResolutionMetadata,
    *,
    config: ResolverConfig,
    recorder: EventRecorder,
    ollama_client: ollama.AsyncClient | None = None,
) -> SourceResult | None:
    """Single web-search request for an abstract; None is terminal, not an error."""
    if not config.ai_search.enabled:
        recorder.record("ai_search", web_search.SOURCE, "skipped", detail="AI search disabled")
        return None

    start = time.perf_counter()
    try:
        text = await web_search.search_abstract(metadata, config, ollama_client)
    except Exception as exc:
        logger.error("AI abstract search failed unexpectedly: %r", exc)
        recorder.record("ai_search", web_search.SOURCE, "error", elapsed_ms(start), repr(exc))
        return None
    if not text:
        recorder.record("ai_search", web_search.SOURCE, "miss", elapsed_ms(start))
        return None

    recorder.record("ai_search", web_search.SOURCE, "hit", elapsed_ms(start), f"{len(text)} chars")
    return SourceResult.abstract(text, web_search.SOURCE)
