"""Shared fixtures: an in-process fake of every registry the waterfall calls."""

from collections import Counter
from typing import Callable

import httpx
import pytest

from citeflow.core.config import ResolverConfig
from citeflow.core.events import EventRecorder
from citeflow.core.store import CitationStore

# Route name → request predicate. Names match each client's SOURCE.
ROUTES: dict[str, Callable[[httpx.Request], bool]] = {
    "crossref": lambda r: r.url.host == "api.crossref.org",
    "pmc_idconv": lambda r: r.url.path.startswith("/pmc/utils/idconv"),
    "europe_pmc": lambda r: r.url.host == "www.ebi.ac.uk",
    "pubmed_central": lambda r: r.url.path.endswith("efetch.fcgi")
    and r.url.params.get("db") == "pmc",
    "pubmed": lambda r: r.url.path.endswith("efetch.fcgi")
    and r.url.params.get("db") == "pubmed",
    "openalex": lambda r: r.url.host == "api.openalex.org",
}


class FakeRegistries:
    """MockTransport handler that answers per route and counts calls.

    Unconfigured routes answer 404. A configured Exception is raised as
    the transport error for that route.
    """

    def __init__(self):
        self.responses: dict[str, object] = {}
        self.calls: Counter = Counter()
        self.requests: list[httpx.Request] = []

    def respond(self, route: str, response) -> None:
        assert route in ROUTES, f"unknown route {route}"
        self.responses[route] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for name, matches in ROUTES.items():
            if matches(request):
                self.calls[name] += 1
                response = self.responses.get(name)
                if response is None:
                    return httpx.Response(404)
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(request)
                return response
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


@pytest.fixture()
def registries():
    return FakeRegistries()


@pytest.fixture()
def config():
    return ResolverConfig()


@pytest.fixture()
def recorder():
    return EventRecorder()


@pytest.fixture()
def store(tmp_path):
    cs = CitationStore(tmp_path / "citations.db")
    yield cs
    cs.close()


# ── Canned Payloads ──────────────────────────────────────────────────

ARTICLE_BODY = (
    "Quorum sensing regulates virulence and biofilm formation in many bacterial "
    "pathogens. In polymicrobial infections, interspecies signalling alters "
    "antibiotic tolerance, and we review how these interactions shape treatment "
    "outcomes across clinical settings and laboratory models. "
)

JATS_XML = (
    '<?xml version="1.0"?><article><front><article-meta><title-group>'
    "<article-title>Quorum sensing &amp; resistance</article-title></title-group>"
    "</article-meta></front><body><sec><p>" + ARTICLE_BODY * 2 + "</p></sec></body></article>"
)

MEDLINE_TEXT = (
    "\n"
    "PMID- 12345678\n"
    "TI  - Quorum sensing and antibiotic resistance.\n"
    "AB  - This is an abstract.\n"
    "FAU - Cui, Sunny\n"
)


def idconv_json(**record) -> httpx.Response:
    return httpx.Response(200, json={"status": "ok", "records": [record]})


def crossref_json(doi: str | None) -> httpx.Response:
    items = [{"DOI": doi, "title": ["Matched"]}] if doi else []
    return httpx.Response(200, json={"message": {"items": items}})
