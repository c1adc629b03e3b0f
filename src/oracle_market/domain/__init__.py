"""Domain layer base classes: ValueObject, DomainEvent, EventBus, Repository."""
from oracle_market.domain.events import DomainEvent, EventBus, InProcessEventDispatcher
from oracle_market.domain.repository import Repository
from oracle_market.domain.value_object import ValueObject

__all__ = [
    "ValueObject",
    "DomainEvent",
    "EventBus",
    "InProcessEventDispatcher",
    "Repository",
]
