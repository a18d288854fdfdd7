"""First-positive race over concurrent source branches."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Sequence

from citeflow.core.errors import SourceUnavailable
from citeflow.core.events import EventRecorder
from citeflow.core.models import SourceResult

logger = logging.getLogger(__name__)

BranchFactory = Callable[[], Awaitable[SourceResult]]
Branch = tuple[str, BranchFactory]


# ── Single Branch ────────────────────────────────────────────────────


async def run_branch(
    name: str,
    factory: BranchFactory,
    *,
    stage: str,
    timeout: float,
    recorder: EventRecorder,
) -> SourceResult:
    """Run one source call under its own timeout.

    Always resolves to a SourceResult: timeouts, transport failures and
    unexpected errors become NotFound so the race keeps waiting.
    """
    start = time.perf_counter()
    try:
        result = await asyncio.wait_for(factory(), timeout=timeout)
    except asyncio.TimeoutError:
        recorder.record(stage, name, "timeout", elapsed_ms(start), f"> {timeout:g}s")
        return SourceResult.not_found(name)
    except SourceUnavailable as exc:
        recorder.record(stage, name, "error", elapsed_ms(start), exc.reason)
        return SourceResult.not_found(name)
    except Exception as exc:
        logger.error("%s branch %s failed unexpectedly: %r", stage, name, exc)
        recorder.record(stage, name, "error", elapsed_ms(start), repr(exc))
        return SourceResult.not_found(name)

    outcome = "hit" if result.found else "miss"
    detail = f"{len(result.text)} chars" if result.found else None
    recorder.record(stage, name, outcome, elapsed_ms(start), detail)
    return result


# ── Race ─────────────────────────────────────────────────────────────


async def first_positive(
    branches: Sequence[Branch],
    *,
    stage: str,
    timeout: float,
    recorder: EventRecorder,
) -> SourceResult | None:
    """Start every branch at once; return the first result that has content.

    A fast empty answer never beats a slower real one: NotFound results are
    skipped and the race only concludes "nothing" once every branch has
    resolved negatively. Losing branches are cancelled once a winner is in.
    """
    if not branches:
        return None

    tasks = [
        asyncio.create_task(
            run_branch(name, factory, stage=stage, timeout=timeout, recorder=recorder),
            name=f"{stage}:{name}",
        )
        for name, factory in branches
    ]
    try:
        for next_done in asyncio.as_completed(tasks):
            result = await next_done
            if result.found:
                logger.info("[%s] winner: %s", stage, result.source)
                return result
        return None
    finally:
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


def elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0
