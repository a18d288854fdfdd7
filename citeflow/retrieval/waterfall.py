"""Citation resolution waterfall: parse → identifiers → content → persist."""

import asyncio
import logging
from typing import Optional

import httpx
import ollama
from pydantic import BaseModel, ConfigDict, Field

from citeflow.agents.extractor import extract_metadata
from citeflow.core.config import ResolverConfig
from citeflow.core.events import EventRecorder, EventSink
from citeflow.core.models import (
    NO_CONTENT,
    CitationData,
    FullTextRecord,
    IdentifierSet,
    ParsedCitation,
    ResolutionMetadata,
    SourceResult,
)
from citeflow.core.store import CitationStore
from citeflow.parsers.citation_parser import doi_url
from citeflow.retrieval.identifiers import resolve_identifiers
from citeflow.retrieval.stages import abstract_race, ai_search_fallback, full_text_race
from citeflow.search.http import build_client

logger = logging.getLogger(__name__)


# ── Resolution Context ───────────────────────────────────────────────


class ResolutionContext(BaseModel):
    """State threaded through the stages of one resolve call.

    Each stage reads what earlier stages produced and adds its own output.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    metadata: ResolutionMetadata
    identifiers: IdentifierSet = Field(default_factory=IdentifierSet)
    content: Optional[SourceResult] = None
    deadline_hit: bool = False
    recorder: EventRecorder = Field(default_factory=EventRecorder)

    @property
    def text(self) -> str:
        return self.content.text if self.content and self.content.found else NO_CONTENT

    @property
    def url(self) -> str | None:
        return doi_url(self.identifiers.doi)


# ── Waterfall ────────────────────────────────────────────────────────


class CitationWaterfall:
    """Resolves citations to stored text through a chain of registries."""

    def __init__(
        self,
        store: CitationStore,
        config: ResolverConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        ollama_client: ollama.AsyncClient | None = None,
        sink: EventSink | None = None,
    ):
        self.store = store
        self.config = config or ResolverConfig()
        self._http_client = http_client
        self._ollama_client = ollama_client
        self._sink = sink

    # ── Public API ───────────────────────────────────────────

    async def resolve(
        self,
        citation: str | ResolutionMetadata,
        identifiers: IdentifierSet | None = None,
    ) -> CitationData:
        """Resolve and persist a citation. Returns its reference, never its text.

        Only a store failure (PersistenceError) escapes; every source
        failure degrades to the next source or the no-content sentinel.
        """
        ctx = await self.run(citation, identifiers)
        return self.persist(ctx)

    def read_full_text(self, citation_id: str) -> FullTextRecord:
        """Stored text for a reference id; raises CitationNotFoundError."""
        return self.store.read_full_text(citation_id)

    # ── Stages ───────────────────────────────────────────────

    async def run(
        self,
        citation: str | ResolutionMetadata,
        identifiers: IdentifierSet | None = None,
    ) -> ResolutionContext:
        """Every stage except persistence."""
        parsed = await self._parse(citation, identifiers)
        ctx = ResolutionContext(
            metadata=parsed.metadata,
            identifiers=parsed.identifiers,
            recorder=EventRecorder(self._sink),
        )
        logger.info("Resolving citation: %s", ctx.metadata.title[:100])

        if self._http_client is not None:
            await self._gather_with_deadline(ctx, self._http_client)
        else:
            async with build_client(self.config) as client:
                await self._gather_with_deadline(ctx, client)

        if ctx.content is None:
            logger.warning("No content found for %r", ctx.metadata.title[:100])
        return ctx

    def persist(self, ctx: ResolutionContext) -> CitationData:
        text = ctx.text
        excerpt = ""
        if ctx.content is not None and self.config.thresholds.excerpt_chars:
            excerpt = text[: self.config.thresholds.excerpt_chars].rstrip()

        return self.store.create(
            title=ctx.metadata.title,
            author=ctx.metadata.author,
            year=ctx.metadata.year,
            url=ctx.url,
            excerpt=excerpt,
            full_text=text,
        )

    async def _parse(
        self,
        citation: str | ResolutionMetadata,
        identifiers: IdentifierSet | None,
    ) -> ParsedCitation:
        if isinstance(citation, ResolutionMetadata):
            return ParsedCitation(metadata=citation, identifiers=identifiers or IdentifierSet())

        parsed = await extract_metadata(citation, self.config, self._ollama_client)
        if identifiers is not None:
            parsed = ParsedCitation(
                metadata=parsed.metadata,
                identifiers=identifiers.merge(parsed.identifiers),
            )
        return parsed

    async def _gather_with_deadline(self, ctx: ResolutionContext, client: httpx.AsyncClient) -> None:
        deadline = self.config.deadline_seconds
        if deadline is None:
            await self._gather(ctx, client)
            return
        try:
            await asyncio.wait_for(self._gather(ctx, client), timeout=deadline)
        except asyncio.TimeoutError:
            ctx.deadline_hit = True
            ctx.recorder.record("waterfall", "*", "timeout", deadline * 1000.0, "deadline reached")

    async def _gather(self, ctx: ResolutionContext, client: httpx.AsyncClient) -> None:
        """Identifiers first, then content stages in order until one has text."""
        ctx.identifiers = await resolve_identifiers(
            ctx.metadata,
            ctx.identifiers,
            client=client,
            config=self.config,
            recorder=ctx.recorder,
            ollama_client=self._ollama_client,
        )

        ctx.content = await full_text_race(
            ctx.identifiers, client=client, config=self.config, recorder=ctx.recorder
        )
        if ctx.content is not None:
            return

        ctx.content = await abstract_race(
            ctx.identifiers, client=client, config=self.config, recorder=ctx.recorder
        )
        if ctx.content is not None:
            return

        ctx.content = await ai_search_fallback(
            ctx.metadata,
            config=self.config,
            recorder=ctx.recorder,
            ollama_client=self._ollama_client,
        )


# ── Module-level Helpers ─────────────────────────────────────────────


async def resolve_citation(
    citation: str | ResolutionMetadata,
    *,
    config: ResolverConfig | None = None,
    store: CitationStore | None = None,
) -> CitationData:
    """One-shot resolve using the store configured in config."""
    config = config or ResolverConfig()
    own_store = store is None
    store = store or CitationStore(config.store.db_path)
    try:
        return await CitationWaterfall(store, config).resolve(citation)
    finally:
        if own_store:
            store.close()


def read_full_text(
    citation_id: str,
    *,
    config: ResolverConfig | None = None,
    store: CitationStore | None = None,
) -> FullTextRecord:
    config = config or ResolverConfig()
    own_store = store is None
    store = store or CitationStore(config.store.db_path)
    try:
        return store.read_full_text(citation_id)
    finally:
        if own_store:
            store.close()
