"""Repository: interface for record persistence, keyed by string id."""
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """
    Repository interface: get by id, add new, save existing, remove.
    get() hands out a working copy; nothing is visible to other callers until save().
    """

    @abstractmethod
    async def get(self, id: str) -> Optional[T]:
        ...

    @abstractmethod
    async def add(self, record: T) -> None:
        ...

    @abstractmethod
    async def save(self, record: T) -> None:
        ...

    @abstractmethod
    async def remove(self, id: str) -> None:
        ...
