"""Shared async HTTP plumbing for registry clients."""

import logging

import httpx

from citeflow.core.config import ResolverConfig
from citeflow.core.errors import SourceUnavailable

logger = logging.getLogger(__name__)


def build_client(config: ResolverConfig) -> httpx.AsyncClient:
    """One AsyncClient per resolve call; every request inherits the timeout."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http.timeout_seconds),
        headers={"User-Agent": config.http.user_agent},
        follow_redirects=True,
    )


async def get_text(
    client: httpx.AsyncClient,
    url: str,
    *,
    source: str,
    params: dict | None = None,
    headers: dict | None = None,
) -> str | None:
    """GET url and return the body; None on 404, SourceUnavailable otherwise."""
    response = await _get(client, url, source=source, params=params, headers=headers)
    if response is None:
        return None
    return response.text


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    source: str,
    params: dict | None = None,
    headers: dict | None = None,
) -> dict | None:
    """GET url and decode JSON; None on 404 or a non-object body."""
    response = await _get(client, url, source=source, params=params, headers=headers)
    if response is None:
        return None
    try:
        data = response.json()
    except ValueError as exc:
        raise SourceUnavailable(source, f"invalid JSON: {exc}") from exc
    return data if isinstance(data, dict) else None


async def _get(
    client: httpx.AsyncClient,
    url: str,
    *,
    source: str,
    params: dict | None,
    headers: dict | None,
) -> httpx.Response | None:
    try:
        response = await client.get(url, params=params, headers=headers)
    except httpx.HTTPError as exc:
        raise SourceUnavailable(source, f"{type(exc).__name__}: {exc}") from exc

    if response.status_code == 404:
        logger.debug("%s: 404 for %s", source, url)
        return None
    if response.is_error:
        raise SourceUnavailable(source, f"HTTP {response.status_code}")
    return response


def ncbi_params(config: ResolverConfig, **params) -> dict:
    """E-utilities / idconv query params with tool, email and optional api_key."""
    params.update(tool=config.contact.tool, email=config.contact.email)
    if config.contact.ncbi_api_key:
        params["api_key"] = config.contact.ncbi_api_key
    return params
