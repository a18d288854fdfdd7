#!/usr/bin/env python3
"""Resolve a citation through the waterfall, or read a stored one back."""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from citeflow.core.config import ResolverConfig, load_config
from citeflow.core.errors import CitationNotFoundError, PersistenceError
from citeflow.core.store import CitationStore
from citeflow.retrieval.waterfall import CitationWaterfall

logger = logging.getLogger("resolve_citation")


# ── Commands ─────────────────────────────────────────────────────────


async def _resolve(config: ResolverConfig, citation: str, show_events: bool) -> int:
    store = CitationStore(config.store.db_path)
    waterfall = CitationWaterfall(store, config)
    t = time.time()
    try:
        ctx = await waterfall.run(citation)
        data = waterfall.persist(ctx)
    except PersistenceError as exc:
        logger.error("Could not store citation: %s", exc)
        return 1
    finally:
        store.close()

    logger.info("Resolved in %.1fs via %s", time.time() - t,
                ctx.content.source if ctx.content else "nothing")
    print(json.dumps(data.model_dump(), indent=2))
    if show_events:
        print(json.dumps(ctx.recorder.to_json_log(), indent=2))
    return 0


def _read(config: ResolverConfig, citation_id: str) -> int:
    store = CitationStore(config.store.db_path)
    try:
        record = store.read_full_text(citation_id)
    except CitationNotFoundError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        store.close()

    print(record.title)
    print("─" * 60)
    print(record.full_text)
    return 0


# ── CLI ──────────────────────────────────────────────────────────────


def main() -> int:
    parser = argparse.ArgumentParser(description="Citation resolution waterfall")
    parser.add_argument("--config", default=None, help="Path to resolver YAML config")
    parser.add_argument("--db", default=None, help="Override the citation database path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_resolve = sub.add_parser("resolve", help="Resolve and store a citation")
    p_resolve.add_argument("citation", help="Citation text in any common style")
    p_resolve.add_argument("--events", action="store_true", help="Print per-source events")

    p_read = sub.add_parser("read", help="Print the stored text for a citation id")
    p_read.add_argument("citation_id")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = load_config(args.config)
    if args.db:
        config.store.db_path = Path(args.db)

    if args.command == "resolve":
        return asyncio.run(_resolve(config, args.citation, args.events))
    return _read(config, args.citation_id)


if __name__ == "__main__":
    sys.exit(main())
