"""Per-record ordering: one asyncio lock per record key, never a global lock."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


def shop_key(shop_id: str) -> str:
    return f"shop:{shop_id}"


def listing_key(shop_id: str, listing_id: int) -> str:
    return f"listing:{shop_id}:{listing_id}"


def currency_key(shop_id: str, currency: str) -> str:
    return f"currency:{shop_id}:{currency}"


def template_key(template_id: str) -> str:
    return f"template:{template_id}"


def ticket_key(ticket_id: str) -> str:
    return f"ticket:{ticket_id}"


class RecordLocks:
    """
    Mutations of the same record run one at a time; disjoint records never wait on each other.
    Keys are acquired in sorted order so two multi-record operations cannot deadlock.
    A key's lock is dropped once its last holder or waiter leaves.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, *keys: str | None) -> AsyncIterator[None]:
        ordered = sorted({k for k in keys if k})
        joined: list[str] = []
        acquired: list[str] = []
        try:
            for key in ordered:
                lock = self._locks.setdefault(key, asyncio.Lock())
                self._users[key] = self._users.get(key, 0) + 1
                joined.append(key)
                await lock.acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
            for key in joined:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    del self._locks[key]

    @property
    def tracked(self) -> int:
        return len(self._locks)

    def is_held(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
