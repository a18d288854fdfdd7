"""Tool-call facade for the orchestration agents.

Agents pass flat JSON arguments: empty strings stand for "not known" and
zero for "no year". Results are plain dicts ready to serialize.
"""

import logging

from citeflow.agents.extractor import extract_metadata
from citeflow.core.config import ResolverConfig
from citeflow.core.models import IdentifierSet, ResolutionMetadata, UNKNOWN_TITLE
from citeflow.core.store import CitationStore
from citeflow.retrieval.waterfall import CitationWaterfall

logger = logging.getLogger(__name__)


async def parse_citation(citation: str, config: ResolverConfig | None = None) -> dict:
    """Structured metadata for a citation string in any common style."""
    logger.info("parse_citation: %s", citation[:100])
    parsed = await extract_metadata(citation, config or ResolverConfig())
    return {
        **parsed.metadata.model_dump(),
        **parsed.identifiers.model_dump(),
    }


async def fetch_and_save_citation(
    waterfall: CitationWaterfall,
    title: str,
    author: str = "",
    year: int = 0,
    doi: str = "",
    pmid: str = "",
    journal: str = "",
) -> dict:
    """Resolve from structured metadata and store it. Returns the id, never the text."""
    metadata = ResolutionMetadata(
        title=title.strip() or UNKNOWN_TITLE,
        author=author.strip() or None,
        year=year or None,
        journal=journal.strip() or None,
    )
    identifiers = IdentifierSet(doi=doi.strip() or None, pmid=pmid.strip() or None)
    data = await waterfall.resolve(metadata, identifiers)
    return data.model_dump()


def read_full_text_from_database(store: CitationStore, citation_id: str) -> dict:
    """Stored full text and title; raises CitationNotFoundError for unknown ids."""
    record = store.read_full_text(citation_id)
    logger.info("read_full_text: %s (%d chars)", record.title[:80], len(record.full_text))
    return record.model_dump()
