"""Persistence: repository interfaces per record type and their in-memory implementations."""
from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable, Generic, Optional, TypeVar

from oracle_market.domain import Repository
from oracle_market.shop.records import (
    AcceptedCurrency,
    Coin,
    DiscountTemplate,
    DiscountTicket,
    Listing,
    Receipt,
    Shop,
)

T = TypeVar("T")


class IShopRepository(Repository[Shop]):
    pass


class IListingRepository(Repository[Listing]):
    @abstractmethod
    async def list_for_shop(self, shop_id: str) -> list[Listing]:
        ...


class ICurrencyRepository(Repository[AcceptedCurrency]):
    @abstractmethod
    async def list_for_shop(self, shop_id: str) -> list[AcceptedCurrency]:
        ...


class IDiscountTemplateRepository(Repository[DiscountTemplate]):
    @abstractmethod
    async def list_for_shop(self, shop_id: str) -> list[DiscountTemplate]:
        ...

    @abstractmethod
    async def list_for_listing(self, shop_id: str, listing_id: int) -> list[DiscountTemplate]:
        ...


class IDiscountTicketRepository(Repository[DiscountTicket]):
    @abstractmethod
    async def list_for_claimer(self, claimer: str) -> list[DiscountTicket]:
        ...


class IReceiptRepository(Repository[Receipt]):
    @abstractmethod
    async def list_for_owner(self, owner: str) -> list[Receipt]:
        ...


class IPayoutLedger(ABC):
    """Where checkout routes coins: shop owner payouts and buyer change."""

    @abstractmethod
    async def deposit(self, address: str, coin: Coin) -> None:
        ...

    @abstractmethod
    async def balance(self, address: str, currency: str) -> int:
        ...


class InMemoryRepository(Repository[T], Generic[T]):
    """
    Dict-backed store. Records go in and out as deep copies, so an aborted
    operation that mutated its working copy leaves the stored record untouched.
    """

    key_of: Callable[[T], str]

    def __init__(self) -> None:
        self._store: dict[str, T] = {}

    async def get(self, id: str) -> Optional[T]:
        record = self._store.get(id)
        return copy.deepcopy(record) if record is not None else None

    async def add(self, record: T) -> None:
        key = type(self).key_of(record)
        if key in self._store:
            raise KeyError(f"Record {key} already exists")
        self._store[key] = copy.deepcopy(record)

    async def save(self, record: T) -> None:
        self._store[type(self).key_of(record)] = copy.deepcopy(record)

    async def remove(self, id: str) -> None:
        self._store.pop(id, None)

    def _select(self, predicate: Callable[[T], bool]) -> list[T]:
        return [copy.deepcopy(r) for r in self._store.values() if predicate(r)]


class InMemoryShopRepository(InMemoryRepository[Shop], IShopRepository):
    @staticmethod
    def key_of(record: Shop) -> str:
        return record.id


class InMemoryListingRepository(InMemoryRepository[Listing], IListingRepository):
    @staticmethod
    def key_of(record: Listing) -> str:
        return record.key

    async def list_for_shop(self, shop_id: str) -> list[Listing]:
        listings = self._select(lambda r: r.shop_id == shop_id)
        return sorted(listings, key=lambda r: r.listing_id)


class InMemoryCurrencyRepository(InMemoryRepository[AcceptedCurrency], ICurrencyRepository):
    @staticmethod
    def key_of(record: AcceptedCurrency) -> str:
        return record.key

    async def list_for_shop(self, shop_id: str) -> list[AcceptedCurrency]:
        return self._select(lambda r: r.shop_id == shop_id)


class InMemoryDiscountTemplateRepository(InMemoryRepository[DiscountTemplate], IDiscountTemplateRepository):
    @staticmethod
    def key_of(record: DiscountTemplate) -> str:
        return record.id

    async def list_for_shop(self, shop_id: str) -> list[DiscountTemplate]:
        return self._select(lambda r: r.shop_id == shop_id)

    async def list_for_listing(self, shop_id: str, listing_id: int) -> list[DiscountTemplate]:
        return self._select(lambda r: r.shop_id == shop_id and r.applies_to_listing_id == listing_id)


class InMemoryDiscountTicketRepository(InMemoryRepository[DiscountTicket], IDiscountTicketRepository):
    @staticmethod
    def key_of(record: DiscountTicket) -> str:
        return record.id

    async def list_for_claimer(self, claimer: str) -> list[DiscountTicket]:
        return self._select(lambda r: r.claimer == claimer)


class InMemoryReceiptRepository(InMemoryRepository[Receipt], IReceiptRepository):
    @staticmethod
    def key_of(record: Receipt) -> str:
        return record.id

    async def list_for_owner(self, owner: str) -> list[Receipt]:
        return self._select(lambda r: r.owner == owner)


class InMemoryPayoutLedger(IPayoutLedger):
    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = defaultdict(int)

    async def deposit(self, address: str, coin: Coin) -> None:
        if coin.value:
            self._balances[(address, coin.currency)] += coin.value

    async def balance(self, address: str, currency: str) -> int:
        return self._balances.get((address, currency), 0)
