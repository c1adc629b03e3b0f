from oracle_market.events.event_bus_module import EventBusModule
from oracle_market.events.journal import EventJournal

__all__ = [
    "EventBusModule",
    "EventJournal",
]
