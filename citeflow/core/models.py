"""Shared data models for citation resolution."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_TITLE = "Unknown Title"
NO_CONTENT = "No content available. Citation could not be retrieved from any source."
NOT_FOUND_TOKEN = "NOT_FOUND"


# ── Identifiers & Metadata ───────────────────────────────────────────


class IdentifierSet(BaseModel):
    """DOI / PMID / PMCID known for a single work.

    Fields only ever go from absent to present; use merge() to add.
    """

    doi: Optional[str] = None
    pmid: Optional[str] = None
    pmcid: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.doi and self.pmid and self.pmcid)

    def merge(self, other: "IdentifierSet | None") -> "IdentifierSet":
        """Return a copy with gaps filled from other; existing values win."""
        if other is None:
            return self.model_copy()
        return IdentifierSet(
            doi=self.doi or other.doi,
            pmid=self.pmid or other.pmid,
            pmcid=self.pmcid or other.pmcid,
        )


class ResolutionMetadata(BaseModel):
    """Bibliographic metadata parsed from a citation. Read-only."""

    model_config = ConfigDict(frozen=True)

    title: str = UNKNOWN_TITLE
    author: Optional[str] = None
    year: Optional[int] = None
    journal: Optional[str] = None

    def search_query(self) -> str:
        """Title, author and year joined for free-text registry search."""
        parts = [self.title, self.author, str(self.year) if self.year else None]
        return " ".join(p for p in parts if p)


class ParsedCitation(BaseModel):
    """Output of metadata extraction: metadata plus any identifiers seen."""

    metadata: ResolutionMetadata = Field(default_factory=ResolutionMetadata)
    identifiers: IdentifierSet = Field(default_factory=IdentifierSet)


# ── Source Results ───────────────────────────────────────────────────


class SourceResult(BaseModel):
    """Outcome of one external-source call."""

    kind: Literal["full_text", "abstract", "not_found"]
    source: str
    text: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.kind != "not_found" and bool(self.text)

    @classmethod
    def full_text(cls, text: str, source: str) -> "SourceResult":
        return cls(kind="full_text", text=text, source=source)

    @classmethod
    def abstract(cls, text: str, source: str) -> "SourceResult":
        return cls(kind="abstract", text=text, source=source)

    @classmethod
    def not_found(cls, source: str) -> "SourceResult":
        return cls(kind="not_found", source=source)


# ── Persisted Citation ───────────────────────────────────────────────


class CitationRecord(BaseModel):
    """A resolved citation as stored. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    author: Optional[str] = None
    year: Optional[int] = None
    url: Optional[str] = None
    excerpt: str = ""
    full_text: str
    created_at: datetime


class CitationData(BaseModel):
    """What resolve() hands back: an address for the content, not the content."""

    citation_id: str
    title: str
    author: Optional[str] = None
    year: Optional[int] = None
    excerpt: str = ""
    url: Optional[str] = None


class FullTextRecord(BaseModel):
    full_text: str
    title: str
