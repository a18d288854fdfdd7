"""Exception types raised across the resolver."""


class CiteflowError(Exception):
    """Base class for resolver errors."""


class SourceUnavailable(CiteflowError):
    """Network error, timeout or non-2xx response from an external source."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class MalformedIdentifier(CiteflowError, ValueError):
    """Identifier text that does not match its canonical pattern."""


class CitationNotFoundError(CiteflowError, LookupError):
    """No stored citation has the requested id."""

    def __init__(self, citation_id: str):
        super().__init__(f"Citation with ID {citation_id} not found")
        self.citation_id = citation_id


class PersistenceError(CiteflowError):
    """The citation store could not write a record."""
