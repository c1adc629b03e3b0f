"""EventJournal: in-process bus that also keeps the ordered event records for indexers."""
from __future__ import annotations

from typing import Any

import structlog

from oracle_market.domain.events import DomainEvent, InProcessEventDispatcher

log = structlog.get_logger(__name__)


class EventJournal(InProcessEventDispatcher):
    """Dispatches like InProcessEventDispatcher and appends every event's record, in publish order."""

    def __init__(self) -> None:
        super().__init__()
        self._records: list[dict[str, Any]] = []

    async def publish(self, event: DomainEvent) -> None:
        record = event.to_record()
        self._records.append(record)
        log.debug("event_published", event_name=event.event_name, record=record)
        await super().publish(event)

    @property
    def records(self) -> list[dict[str, Any]]:
        return list(self._records)

    def named(self, event_name: str) -> list[dict[str, Any]]:
        return [r for r in self._records if r["event"] == event_name]
