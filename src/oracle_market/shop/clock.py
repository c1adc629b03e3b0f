"""Platform time source. All schedule and oracle comparisons use whole seconds."""
from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int:
        ...


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Clock that only moves when told to (tests, replays)."""

    def __init__(self, now: int = 0) -> None:
        self._now = now

    def now(self) -> int:
        return self._now

    def set(self, now: int) -> None:
        self._now = now

    def advance(self, seconds: int) -> int:
        self._now += seconds
        return self._now
