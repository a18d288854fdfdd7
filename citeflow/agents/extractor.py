"""Citation metadata extraction: regex heuristics, optionally refined by Ollama."""

import asyncio
import logging
from typing import Optional

import ollama
from pydantic import BaseModel, Field

from citeflow.agents.web_search import OLLAMA_ERRORS, build_ollama_client
from citeflow.core.config import ResolverConfig
from citeflow.core.models import (
    UNKNOWN_TITLE,
    IdentifierSet,
    ParsedCitation,
    ResolutionMetadata,
)
from citeflow.parsers.citation_parser import extract_doi, parse_citation

logger = logging.getLogger(__name__)


# ── Structured Output Model ──────────────────────────────────────────


class ExtractedCitation(BaseModel):
    """Structured output from the extraction model."""

    title: Optional[str] = Field(default=None, description="Article title only")
    author: Optional[str] = Field(default=None, description="First author, 'Surname, Initials'")
    year: Optional[int] = Field(default=None, ge=1000, le=2100)
    journal: Optional[str] = None
    doi: Optional[str] = None
    pmid: Optional[str] = None


# ── LLM Pass ─────────────────────────────────────────────────────────


async def extract_with_llm(
    raw: str,
    config: ResolverConfig,
    client: ollama.AsyncClient,
) -> ExtractedCitation:
    """Ask the extraction model for structured metadata. May raise."""
    response = await client.chat(
        model=config.extractor.model,
        messages=[
            {
                "role": "system",
                "content": (
                    "You extract bibliographic metadata from citation strings in "
                    "any style (APA, Vancouver, MLA, bare DOI or URL). Use null "
                    "for any field that is not present. Respond ONLY with JSON."
                ),
            },
            {"role": "user", "content": f"/no_think\nCitation:\n{raw}"},
        ],
        format=ExtractedCitation.model_json_schema(),
        options={"temperature": 0},
        think=False,
    )
    return ExtractedCitation.model_validate_json(response.message.content or "")


# ── Public API ───────────────────────────────────────────────────────


async def extract_metadata(
    raw: str,
    config: ResolverConfig,
    client: ollama.AsyncClient | None = None,
) -> ParsedCitation:
    """Turn a raw citation into metadata + identifiers. Never raises.

    The regex parse always runs. With `extractor.use_llm` the model's
    metadata is preferred, while identifiers stay regex-first because the
    patterns are exact.
    """
    parsed = parse_citation(raw)
    if not config.extractor.use_llm:
        return parsed

    client = client or build_ollama_client(config)
    try:
        llm = await asyncio.wait_for(
            extract_with_llm(raw, config, client),
            timeout=config.ai_search.timeout_seconds,
        )
    except OLLAMA_ERRORS as exc:
        logger.warning("LLM extraction failed, using regex parse: %s", exc)
        return parsed
    except Exception as exc:
        logger.error("LLM extraction failed unexpectedly, using regex parse: %r", exc)
        return parsed

    return merge_extraction(parsed, llm)


def merge_extraction(parsed: ParsedCitation, llm: ExtractedCitation) -> ParsedCitation:
    base = parsed.metadata
    title = _present(llm.title)
    metadata = ResolutionMetadata(
        title=title if title else base.title or UNKNOWN_TITLE,
        author=_present(llm.author) or base.author,
        year=llm.year or base.year,
        journal=_present(llm.journal) or base.journal,
    )
    pmid = _present(llm.pmid)
    llm_ids = IdentifierSet(
        doi=extract_doi(llm.doi),
        pmid=pmid if pmid and pmid.isdigit() else None,
    )
    return ParsedCitation(
        metadata=metadata,
        identifiers=parsed.identifiers.merge(llm_ids),
    )


def _present(value: str | None) -> str | None:
    """Blank strings from the model mean absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None
