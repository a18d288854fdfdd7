"""Structured per-source events emitted while a citation is resolved."""

import logging
from datetime import datetime, timezone
from typing import Callable, Literal, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

Outcome = Literal["hit", "miss", "error", "timeout", "skipped"]


class SourceEvent(BaseModel):
    """One instrumented call: which stage, which source, what happened."""

    stage: str
    source: str
    outcome: Outcome
    latency_ms: float = Field(default=0.0, ge=0.0)
    detail: Optional[str] = None
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


EventSink = Callable[[SourceEvent], None]


class EventRecorder:
    """Collects the events of a single resolve call and logs each one.

    An optional sink receives every event as well, e.g. to forward them
    into a metrics pipeline.
    """

    def __init__(self, sink: EventSink | None = None):
        self.events: list[SourceEvent] = []
        self._sink = sink

    def record(
        self,
        stage: str,
        source: str,
        outcome: Outcome,
        latency_ms: float = 0.0,
        detail: str | None = None,
    ) -> SourceEvent:
        event = SourceEvent(
            stage=stage,
            source=source,
            outcome=outcome,
            latency_ms=round(latency_ms, 1),
            detail=detail,
        )
        self.events.append(event)

        level = logging.WARNING if outcome in ("error", "timeout") else logging.INFO
        logger.log(
            level,
            "[%s] %s → %s (%.0f ms)%s",
            stage,
            source,
            outcome,
            event.latency_ms,
            f": {detail}" if detail else "",
        )
        if self._sink is not None:
            self._sink(event)
        return event

    def by_stage(self, stage: str) -> list[SourceEvent]:
        return [e for e in self.events if e.stage == stage]

    def to_json_log(self) -> list[dict]:
        """Events as JSON-ready dicts, oldest first."""
        return [e.model_dump(mode="json") for e in self.events]
