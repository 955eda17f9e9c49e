"""
In-memory repository backing.

Used for tests, demos and single-process deployments. Writes are
serialized with an asyncio.Lock so each save is atomic per record, and
callers always receive deep copies so no one can mutate stored state
without going through ``save``.
"""

import asyncio
from enum import Enum
from typing import Any, Generic, Optional

from src.db.repository import IndexedRepository, T
from src.utils.errors import ConflictError


def _comparable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class InMemoryRepository(IndexedRepository[T], Generic[T]):
    """Dict-backed repository preserving insertion order."""

    def __init__(self, entity_name: str, indexed_fields: tuple[str, ...] = ()):
        self.entity_name = entity_name
        self.indexed_fields = indexed_fields
        self._records: dict[str, T] = {}
        self._lock = asyncio.Lock()

    async def save(self, entity: T) -> T:
        async with self._lock:
            current = self._records.get(entity.id)
            if current is not None and current.version != entity.version:
                raise ConflictError(
                    f"{self.entity_name} {entity.id} was modified concurrently "
                    f"(expected version {entity.version}, found {current.version})"
                )
            stored = entity.model_copy(deep=True)
            object.__setattr__(stored, "version", entity.version + 1)
            self._records[entity.id] = stored
            return stored.model_copy(deep=True)

    async def get(self, entity_id: str) -> Optional[T]:
        entity = self._records.get(entity_id)
        return entity.model_copy(deep=True) if entity is not None else None

    async def get_all(self) -> list[T]:
        return [entity.model_copy(deep=True) for entity in self._records.values()]

    async def delete(self, entity_id: str) -> bool:
        async with self._lock:
            return self._records.pop(entity_id, None) is not None

    async def exists(self, entity_id: str) -> bool:
        return entity_id in self._records

    async def count(self) -> int:
        return len(self._records)

    async def find_all_by_index(self, field: str, value: Any) -> list[T]:
        self._check_indexed(field)
        target = _comparable(value)
        return [
            entity.model_copy(deep=True)
            for entity in self._records.values()
            if _comparable(getattr(entity, field)) == target
        ]

    async def clear(self) -> None:
        async with self._lock:
            self._records.clear()
