"""
EventBusModule: building block for the event bus.
Register with app.register(EventBusModule().journal()) before the domain modules.
"""
from __future__ import annotations

from oracle_market.core.app import Application
from oracle_market.domain.events import EventBus
from oracle_market.events.journal import EventJournal


class EventBusModule:
    """
    Event bus as object: the journal, available in the container as EventBus and as EventJournal.
    Domain modules registered afterwards publish through it and subscribe their on_event handlers to it.
    """

    def __init__(self) -> None:
        self._journal: EventJournal | None = None

    def journal(self) -> EventBusModule:
        """In-process bus that keeps event records for indexing."""
        self._journal = EventJournal()
        return self

    def register_into(self, app: Application) -> None:
        if self._journal is None:
            self._journal = EventJournal()
        app.container.register_instance(EventBus, self._journal)
        app.container.register_instance(EventJournal, self._journal)
