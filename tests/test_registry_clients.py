"""Tests for the Crossref, ID converter, Europe PMC and PMC clients."""

import asyncio

import httpx
import pytest

from citeflow.core.errors import SourceUnavailable
from citeflow.core.models import ResolutionMetadata
from citeflow.search import crossref, europepmc, idconv, pmc
from citeflow.search.http import get_json

from conftest import ARTICLE_BODY, JATS_XML, crossref_json, idconv_json


def _run(registries, call):
    async def go():
        async with registries.client() as client:
            return await call(client)

    return asyncio.run(go())


META = ResolutionMetadata(title="Quorum sensing and resistance", author="Cui, S.", year=2024)


# ── Crossref ─────────────────────────────────────────────────────────


class TestCrossref:
    def test_top_item_doi(self, registries, config):
        seen = {}

        def works(request):
            seen.update(request.url.params)
            return crossref_json("10.1080/19420889.2024.2415598")

        registries.respond("crossref", works)
        doi = _run(registries, lambda c: crossref.lookup_doi(c, META, config))

        assert doi == "10.1080/19420889.2024.2415598"
        assert seen["rows"] == "1"
        assert "Quorum sensing" in seen["query"]
        assert "2024" in seen["query"]
        assert seen["mailto"] == config.contact.email

    def test_no_items(self, registries, config):
        registries.respond("crossref", crossref_json(None))
        assert _run(registries, lambda c: crossref.lookup_doi(c, META, config)) is None

    def test_server_error_raises(self, registries, config):
        registries.respond("crossref", httpx.Response(500))
        with pytest.raises(SourceUnavailable) as exc_info:
            _run(registries, lambda c: crossref.lookup_doi(c, META, config))
        assert exc_info.value.source == "crossref"

    def test_transport_error_raises(self, registries, config):
        registries.respond("crossref", httpx.ConnectError("refused"))
        with pytest.raises(SourceUnavailable, match="ConnectError"):
            _run(registries, lambda c: crossref.lookup_doi(c, META, config))


# ── PMC ID Converter ─────────────────────────────────────────────────


class TestIdConverter:
    def test_converts_doi(self, registries, config):
        registries.respond(
            "pmc_idconv",
            idconv_json(doi="10.1234/abc", pmid=12345678, pmcid="PMC7654321"),
        )
        ids = _run(registries, lambda c: idconv.convert_doi(c, "10.1234/abc", config))
        assert ids.pmid == "12345678"
        assert ids.pmcid == "PMC7654321"

    def test_pmid_only(self, registries, config):
        registries.respond("pmc_idconv", idconv_json(doi="10.1234/abc", pmid="111"))
        ids = _run(registries, lambda c: idconv.convert_doi(c, "10.1234/abc", config))
        assert ids.pmid == "111"
        assert ids.pmcid is None

    def test_error_record(self):
        record = {"doi": "10.1234/x", "status": "error", "errmsg": "invalid article id"}
        assert idconv.parse_idconv_record(record) is None

    def test_record_without_ids(self):
        assert idconv.parse_idconv_record({"doi": "10.1234/x"}) is None

    def test_empty_records(self, registries, config):
        registries.respond("pmc_idconv", httpx.Response(200, json={"records": []}))
        assert _run(registries, lambda c: idconv.convert_doi(c, "10.1234/x", config)) is None


# ── Europe PMC ───────────────────────────────────────────────────────


class TestEuropePMC:
    def test_full_text_from_jats(self, registries, config):
        registries.respond("europe_pmc", httpx.Response(200, text=JATS_XML))
        result = _run(registries, lambda c: europepmc.fetch_full_text(c, "PMC7654321", config))

        assert result.kind == "full_text"
        assert result.source == "europe_pmc"
        assert "Quorum sensing & resistance" in result.text
        assert "<" not in result.text
        assert registries.requests[0].url.path.endswith("/PMC7654321/fullTextXML")

    def test_adds_pmc_prefix(self, registries, config):
        registries.respond("europe_pmc", httpx.Response(200, text=JATS_XML))
        _run(registries, lambda c: europepmc.fetch_full_text(c, "7654321", config))
        assert "/PMC7654321/" in registries.requests[0].url.path

    def test_short_payload_is_not_found(self, registries, config):
        registries.respond("europe_pmc", httpx.Response(200, text="<article><p>Short.</p></article>"))
        result = _run(registries, lambda c: europepmc.fetch_full_text(c, "PMC1", config))
        assert not result.found

    def test_404_is_not_found(self, registries, config):
        result = _run(registries, lambda c: europepmc.fetch_full_text(c, "PMC1", config))
        assert result.kind == "not_found"


# ── PubMed Central ───────────────────────────────────────────────────


class TestPMC:
    def test_full_text(self, registries, config):
        seen = {}

        def efetch(request):
            seen.update(request.url.params)
            return httpx.Response(200, text=JATS_XML)

        registries.respond("pubmed_central", efetch)
        result = _run(registries, lambda c: pmc.fetch_full_text(c, "PMC7654321", config))

        assert result.kind == "full_text"
        assert ARTICLE_BODY.strip()[:40] in result.text
        assert seen["id"] == "7654321"
        assert seen["db"] == "pmc"

    @pytest.mark.parametrize("tag", ["ERROR", "error", "Error"])
    def test_error_element_is_not_found(self, registries, config, tag):
        payload = f"<pmc-articleset><{tag}>Invalid id</{tag}></pmc-articleset>" + " " * 200
        registries.respond("pubmed_central", httpx.Response(200, text=payload))
        result = _run(registries, lambda c: pmc.fetch_full_text(c, "PMC1", config))
        assert not result.found

    def test_tiny_payload_is_not_found(self, registries, config):
        registries.respond("pubmed_central", httpx.Response(200, text="<pmc-articleset/>"))
        result = _run(registries, lambda c: pmc.fetch_full_text(c, "PMC1", config))
        assert not result.found


# ── Shared HTTP ──────────────────────────────────────────────────────


def test_invalid_json_raises(registries):
    registries.respond("crossref", httpx.Response(200, text="not json"))
    with pytest.raises(SourceUnavailable, match="invalid JSON"):
        _run(registries, lambda c: get_json(c, "https://api.crossref.org/works", source="crossref"))


def test_non_object_json_is_none(registries):
    registries.respond("crossref", httpx.Response(200, json=[1, 2]))
    assert _run(
        registries, lambda c: get_json(c, "https://api.crossref.org/works", source="crossref")
    ) is None
