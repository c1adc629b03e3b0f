"""Domain events: base type, bus protocol and in-process dispatcher."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Protocol, runtime_checkable


def _record_value(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, (list, tuple)):
        return [_record_value(v) for v in value]
    return value


@dataclass
class DomainEvent:
    """
    Base domain event type. Subclasses are dataclasses with fields.
    The field names and types of a subclass are its external schema: indexers read to_record().
    """

    event_name: ClassVar[str] = "DomainEvent"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "event_name" not in cls.__dict__:
            cls.event_name = cls.__name__

    def to_record(self) -> dict[str, Any]:
        """Flat, JSON-ready dict: bytes become lowercase hex."""
        payload = {f.name: _record_value(getattr(self, f.name)) for f in dataclasses.fields(self)}
        return {"event": self.event_name, **payload}


@runtime_checkable
class EventBus(Protocol):
    """Event bus protocol: publish and subscribe. EventBusModule registers the journal as the implementation."""

    async def publish(self, event: DomainEvent) -> None:
        ...

    def subscribe(self, event_type: type, handler: Callable[..., Any]) -> None:
        ...


class InProcessEventDispatcher:
    """
    Dispatcher: subscribe by event type, publish invokes handlers.
    Handlers subscribed to a base class (e.g. DomainEvent) receive every subclass.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[..., Any]]] = {}

    def subscribe(self, event_type: type, handler: Callable[..., Any]) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    async def publish(self, event: DomainEvent) -> None:
        for event_type in type(event).__mro__:
            for handler in self._handlers.get(event_type, []):
                result = handler(event)
                if hasattr(result, "__await__"):
                    await result
