"""Citation resolution waterfall."""

from citeflow.retrieval.waterfall import (
    CitationWaterfall,
    ResolutionContext,
    read_full_text,
    resolve_citation,
)

__all__ = ["CitationWaterfall", "ResolutionContext", "read_full_text", "resolve_citation"]
