"""Last-resort abstract search: Ollama web search + chat summarisation."""

import asyncio
import logging

import httpx
import ollama

from citeflow.core.config import ResolverConfig
from citeflow.core.models import NOT_FOUND_TOKEN, ResolutionMetadata

logger = logging.getLogger(__name__)

SOURCE = "ai_web_search"
_MIN_ABSTRACT_CHARS = 50

# Errors an Ollama call can surface; all mean "no answer from this stage"
OLLAMA_ERRORS = (
    ollama.ResponseError,
    ConnectionError,
    httpx.HTTPError,
    asyncio.TimeoutError,
    ValueError,
)


def build_ollama_client(config: ResolverConfig) -> ollama.AsyncClient:
    return ollama.AsyncClient(host=config.ai_search.host)


# ── Web Context ──────────────────────────────────────────────────────


async def web_context(client: ollama.AsyncClient, query: str, max_results: int) -> str:
    """Search the web and format the hits as a numbered context block."""
    response = await client.web_search(query, max_results=max_results)
    blocks = []
    for i, result in enumerate(response.results or [], 1):
        content = (result.content or "")[:4000]
        blocks.append(f"[{i}] {result.title or ''}\n{result.url or ''}\n{content}")
    return "\n\n".join(blocks)


async def ask_with_web_context(
    client: ollama.AsyncClient,
    query: str,
    system: str,
    prompt: str,
    config: ResolverConfig,
) -> str:
    """Run one web search, then one chat turn over its results. Returns raw text."""
    context = await web_context(client, query, config.ai_search.max_results)
    if not context:
        return NOT_FOUND_TOKEN

    response = await client.chat(
        model=config.ai_search.model,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": f"{prompt}\n\nWEB SEARCH RESULTS:\n{context}"},
        ],
        options={"temperature": 0},
        think=False,
    )
    return (response.message.content or "").strip()


# ── Abstract Fallback ────────────────────────────────────────────────


async def search_abstract(
    metadata: ResolutionMetadata,
    config: ResolverConfig,
    client: ollama.AsyncClient | None = None,
) -> str | None:
    """Abstract found by web search, or None.

    Disabled deployments return None without any call. A NOT_FOUND answer
    or an answer too short to be an abstract is also None.
    """
    if not config.ai_search.enabled:
        logger.debug("AI abstract search disabled")
        return None

    client = client or build_ollama_client(config)
    query = metadata.search_query()
    lines = [f"- Title: {metadata.title}"]
    if metadata.author:
        lines.append(f"- Author: {metadata.author}")
    if metadata.year:
        lines.append(f"- Year: {metadata.year}")

    prompt = f"""/no_think
Find the abstract of this academic paper:
{chr(10).join(lines)}

Return ONLY the abstract text as plain prose, no headings or commentary.
If the search results do not contain this paper's abstract, respond with exactly "{NOT_FOUND_TOKEN}"."""

    try:
        answer = await asyncio.wait_for(
            ask_with_web_context(
                client,
                query,
                system=(
                    "You are a research assistant retrieving paper abstracts. "
                    "Only report text that appears in the search results."
                ),
                prompt=prompt,
                config=config,
            ),
            timeout=config.ai_search.timeout_seconds,
        )
    except OLLAMA_ERRORS as exc:
        logger.warning("AI abstract search failed: %s", exc)
        return None

    if not answer or answer.strip().strip('"').upper() == NOT_FOUND_TOKEN:
        return None
    if len(answer) < _MIN_ABSTRACT_CHARS:
        logger.info("AI abstract search answer too short (%d chars)", len(answer))
        return None
    return answer
