"""SQLite citation store: create once, read full text back by id."""

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from citeflow.core.errors import CitationNotFoundError, PersistenceError
from citeflow.core.models import CitationData, CitationRecord, FullTextRecord

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data") / "citations.db"

# ── Schema DDL ───────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS citations (
    id              TEXT PRIMARY KEY,
    title           TEXT NOT NULL,
    author          TEXT,
    year            INTEGER,
    url             TEXT,
    excerpt         TEXT NOT NULL DEFAULT '',
    full_text       TEXT NOT NULL,
    created_at      TEXT NOT NULL
);
"""


# ── CitationStore ────────────────────────────────────────────────────


class CitationStore:
    """Owns resolved citation records. Records are immutable once written."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path or DEFAULT_DB_PATH)
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        if str(self.db_path) != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    # ── Create ───────────────────────────────────────────────

    def create(
        self,
        title: str,
        full_text: str,
        author: str | None = None,
        year: int | None = None,
        url: str | None = None,
        excerpt: str = "",
    ) -> CitationData:
        """Persist a new record in one transaction. Returns it without full text."""
        citation_id = uuid.uuid4().hex
        try:
            with self._conn:
                self._conn.execute(
                    """INSERT INTO citations
                       (id, title, author, year, url, excerpt, full_text, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (citation_id, title, author, year, url, excerpt, full_text, _now()),
                )
        except sqlite3.Error as exc:
            logger.error("Citation save failed for %r: %s", title, exc)
            raise PersistenceError(f"Could not save citation: {exc}") from exc

        logger.info("Saved citation %s (%d chars of text)", citation_id, len(full_text))
        return CitationData(
            citation_id=citation_id,
            title=title,
            author=author,
            year=year,
            excerpt=excerpt,
            url=url,
        )

    # ── Read ─────────────────────────────────────────────────

    def read_full_text(self, citation_id: str) -> FullTextRecord:
        """Return the stored text and title, or raise CitationNotFoundError."""
        row = self._conn.execute(
            "SELECT full_text, title FROM citations WHERE id = ?", (citation_id,)
        ).fetchone()
        if row is None:
            raise CitationNotFoundError(citation_id)
        return FullTextRecord(full_text=row["full_text"], title=row["title"])

    def get(self, citation_id: str) -> CitationRecord:
        row = self._conn.execute(
            "SELECT * FROM citations WHERE id = ?", (citation_id,)
        ).fetchone()
        if row is None:
            raise CitationNotFoundError(citation_id)
        return CitationRecord(**dict(row))

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM citations").fetchone()[0]

    # ── Lifecycle ────────────────────────────────────────────

    def close(self) -> None:
        self._conn.close()


# ── Helpers ──────────────────────────────────────────────────────────


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
