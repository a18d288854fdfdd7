"""Tests for regex citation parsing."""

import pytest

from citeflow.core.errors import MalformedIdentifier
from citeflow.core.models import UNKNOWN_TITLE
from citeflow.parsers.citation_parser import (
    doi_url,
    extract_doi,
    extract_pmid,
    normalize_pmcid,
    parse_citation,
)


# ── Identifiers ──────────────────────────────────────────────────────


def test_apa_citation_with_doi():
    parsed = parse_citation("Smith, J. (2023). Title. Nature. doi:10.1234/example.1")
    assert parsed.identifiers.doi == "10.1234/example.1"
    assert parsed.metadata.year == 2023
    assert parsed.metadata.title == "Title"
    assert parsed.metadata.author == "Smith, J."
    assert parsed.metadata.journal == "Nature"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("see doi:10.1080/19420889.2024.2415598.", "10.1080/19420889.2024.2415598"),
        ("https://doi.org/10.1000/xyz123;", "10.1000/xyz123"),
        ("(doi: 10.1016/S0140-6736(20)30183-5)", "10.1016/S0140-6736(20)30183-5"),
        ("no identifier here", None),
    ],
)
def test_extract_doi_strips_trailing_punctuation(text, expected):
    assert extract_doi(text) == expected


def test_extract_pmid():
    assert extract_pmid("Lancet. 2020;395:497. PMID: 31986264") == "31986264"
    assert extract_pmid("PMID 123") == "123"
    assert extract_pmid("Lancet 2020") is None


def test_normalize_pmcid_uppercases():
    assert normalize_pmcid("pmc7092803") == "PMC7092803"
    assert normalize_pmcid("The PMCID is PMC123.") == "PMC123"


def test_normalize_pmcid_rejects_garbage():
    with pytest.raises(MalformedIdentifier):
        normalize_pmcid("I could not find it")


def test_doi_url():
    assert doi_url("10.1/a") == "https://doi.org/10.1/a"
    assert doi_url(None) is None


# ── Metadata ─────────────────────────────────────────────────────────


def test_vancouver_citation():
    parsed = parse_citation(
        "3. Chien WT, Clifton AV. Peer support for people with schizophrenia. "
        "Cochrane Database Syst Rev. 2019;4:CD010880. PMID: 31012507"
    )
    assert parsed.metadata.author == "Chien WT"
    assert parsed.metadata.title == "Peer support for people with schizophrenia"
    assert parsed.metadata.year == 2019
    assert parsed.identifiers.pmid == "31012507"
    assert parsed.identifiers.doi is None


def test_multiple_authors_keeps_first():
    parsed = parse_citation(
        "Cui, S., & Kim, E. (2024). Quorum sensing and antibiotic resistance. "
        "Communicative & Integrative Biology, 17(1), 2415598."
    )
    assert parsed.metadata.author == "Cui, S."
    assert parsed.metadata.year == 2024
    assert parsed.metadata.journal == "Communicative & Integrative Biology"


def test_parenthesised_year_preferred():
    parsed = parse_citation("Lee, K. (2001). A study of 1999 data. Science.")
    assert parsed.metadata.year == 2001


def test_bare_doi_has_unknown_title():
    parsed = parse_citation("https://doi.org/10.1234/abc")
    assert parsed.metadata.title == UNKNOWN_TITLE
    assert parsed.identifiers.doi == "10.1234/abc"
    assert parsed.metadata.year is None


def test_missing_fields_are_none_not_empty():
    parsed = parse_citation("")
    assert parsed.metadata.title == UNKNOWN_TITLE
    assert parsed.metadata.author is None
    assert parsed.metadata.journal is None
    assert parsed.identifiers.doi is None
    assert parsed.identifiers.pmid is None


def test_never_raises_on_odd_input():
    parsed = parse_citation("((((( 10. / PMID: ) ]]")
    assert parsed.metadata.title
