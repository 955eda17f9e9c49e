"""
Repository contract for storage backends.

The reconciliation services are written against these interfaces only;
concrete backings live in ``src.db.memory`` and ``src.db.sql_repository``.

Every save is atomic for a single record and uses the entity's ``version``
for optimistic concurrency: saving an entity whose version no longer
matches the stored one raises ``ConflictError``.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Optional, TypeVar

from src.schemas.common import StoredModel

T = TypeVar("T", bound=StoredModel)


class Repository(ABC, Generic[T]):
    """Generic repository operations."""

    @abstractmethod
    async def save(self, entity: T) -> T:
        """Insert or update an entity; returns the stored copy with its new version."""

    @abstractmethod
    async def get(self, entity_id: str) -> Optional[T]:
        """Get an entity by id."""

    @abstractmethod
    async def get_all(self) -> list[T]:
        """Get all entities in insertion order."""

    @abstractmethod
    async def delete(self, entity_id: str) -> bool:
        """Delete an entity; False when it did not exist."""

    @abstractmethod
    async def exists(self, entity_id: str) -> bool:
        """Check if an entity exists."""

    async def find(self, predicate: Callable[[T], bool]) -> list[T]:
        """Find entities matching a predicate."""
        return [entity for entity in await self.get_all() if predicate(entity)]

    @abstractmethod
    async def count(self) -> int:
        """Count all entities."""


class IndexedRepository(Repository[T]):
    """Repository with lookups on declared indexed fields."""

    indexed_fields: tuple[str, ...] = ()

    def _check_indexed(self, field: str) -> None:
        if field not in self.indexed_fields:
            raise ValueError(f"{field!r} is not an indexed field ({', '.join(self.indexed_fields)})")

    @abstractmethod
    async def find_all_by_index(self, field: str, value: Any) -> list[T]:
        """Find all entities whose indexed field equals value."""

    async def find_by_index(self, field: str, value: Any) -> Optional[T]:
        """Find the first entity whose indexed field equals value."""
        matches = await self.find_all_by_index(field, value)
        return matches[0] if matches else None

    async def count_by_index(self, field: str, value: Any) -> int:
        """Count entities whose indexed field equals value."""
        return len(await self.find_all_by_index(field, value))
