"""Tests for the OpenAlex abstract client."""

import asyncio

import httpx
import pytest

from citeflow.core.config import ResolverConfig
from citeflow.search.openalex import fetch_abstract, reconstruct_abstract


# ── Abstract Reconstruction ──────────────────────────────────────────


def test_reconstruct_abstract_from_inverted_index():
    inv_index = {
        "This": [0],
        "is": [1],
        "a": [2, 5],
        "test": [3],
        "of": [4],
        "function": [6],
    }
    result = reconstruct_abstract(inv_index)
    assert result == "This is a test of a function"


def test_reconstruct_abstract_none():
    assert reconstruct_abstract(None) is None


def test_reconstruct_abstract_empty():
    assert reconstruct_abstract({}) is None


# ── Fetch (mocked transport) ─────────────────────────────────────────


def test_fetch_abstract_by_doi(registries, config):
    seen = {}

    def work(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"abstract_inverted_index": {"Hello": [0], "world": [1]}})

    registries.respond("openalex", work)
    config.contact.openalex_api_key = "secret"

    async def run():
        async with registries.client() as client:
            return await fetch_abstract(client, "10.1234/abc", config)

    result = asyncio.run(run())
    assert result.kind == "abstract"
    assert result.text == "Hello world"
    assert seen["path"].endswith("/works/https://doi.org/10.1234/abc")
    assert seen["auth"] == "Bearer secret"


def test_fetch_abstract_without_index_is_not_found(registries, config):
    registries.respond("openalex", httpx.Response(200, json={"abstract_inverted_index": None}))

    async def run():
        async with registries.client() as client:
            return await fetch_abstract(client, "10.1234/abc", config)

    result = asyncio.run(run())
    assert not result.found
    assert result.kind == "not_found"


def test_unknown_doi_is_not_found(registries, config):
    async def run():
        async with registries.client() as client:
            return await fetch_abstract(client, "10.1234/missing", config)

    assert not asyncio.run(run()).found


# ── Live Search ──────────────────────────────────────────────────────


@pytest.mark.network
def test_live_abstract_for_known_doi():
    async def run():
        async with httpx.AsyncClient(timeout=20) as client:
            return await fetch_abstract(client, "10.1080/19420889.2024.2415598", ResolverConfig())

    result = asyncio.run(run())
    assert result.found
    assert len(result.text) > 100
