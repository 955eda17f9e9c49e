"""
SQL repository backing.

Entities are stored as JSON payloads in ``entity_records``. Updates are
conditional on the stored version (``UPDATE ... WHERE version = :expected``)
so two writers racing on the same record cannot both succeed.
"""

from enum import Enum
from typing import Any, Generic, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.repository import IndexedRepository, T
from src.models.record import EntityIndexEntry, EntityRecord
from src.utils.errors import ConflictError
from src.utils.logging import get_logger

logger = get_logger(__name__)


def index_value(value: Any) -> Optional[str]:
    """Normalize a field value to the string stored in the index table."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class SqlRepository(IndexedRepository[T], Generic[T]):
    """Repository for one entity type on top of an async SQLAlchemy session factory."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        model_cls: type[T],
        entity_type: str,
        indexed_fields: tuple[str, ...] = (),
    ):
        self.session_maker = session_maker
        self.model_cls = model_cls
        self.entity_type = entity_type
        self.indexed_fields = indexed_fields

    def _to_entity(self, record: EntityRecord) -> T:
        entity = self.model_cls.model_validate(record.payload)
        object.__setattr__(entity, "version", record.version)
        return entity

    def _index_entries(self, entity: T) -> list[EntityIndexEntry]:
        return [
            EntityIndexEntry(
                entity_type=self.entity_type,
                field=field,
                value=index_value(getattr(entity, field)),
            )
            for field in self.indexed_fields
        ]

    def _payload(self, entity: T) -> dict[str, Any]:
        return entity.model_dump(mode="json", exclude={"version"})

    async def save(self, entity: T) -> T:
        new_version = entity.version + 1
        payload = self._payload(entity)

        try:
            async with self.session_maker() as session, session.begin():
                existing = await session.scalar(
                    select(EntityRecord).where(
                        EntityRecord.entity_type == self.entity_type,
                        EntityRecord.entity_id == entity.id,
                    )
                )

                if existing is None:
                    record = EntityRecord(
                        entity_type=self.entity_type,
                        entity_id=entity.id,
                        version=new_version,
                        payload=payload,
                    )
                    record.index_entries = self._index_entries(entity)
                    session.add(record)
                else:
                    result = await session.execute(
                        update(EntityRecord)
                        .where(
                            EntityRecord.seq == existing.seq,
                            EntityRecord.version == entity.version,
                        )
                        .values(version=new_version, payload=payload)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise ConflictError(
                            f"{self.entity_type} {entity.id} was modified concurrently "
                            f"(expected version {entity.version})"
                        )
                    await session.execute(
                        delete(EntityIndexEntry).where(EntityIndexEntry.record_seq == existing.seq)
                    )
                    for entry in self._index_entries(entity):
                        entry.record_seq = existing.seq
                        session.add(entry)
        except IntegrityError as e:
            # Two writers inserted the same id at once
            raise ConflictError(f"{self.entity_type} {entity.id} was created concurrently") from e

        stored = entity.model_copy(deep=True)
        object.__setattr__(stored, "version", new_version)
        return stored

    async def get(self, entity_id: str) -> Optional[T]:
        async with self.session_maker() as session:
            record = await session.scalar(
                select(EntityRecord).where(
                    EntityRecord.entity_type == self.entity_type,
                    EntityRecord.entity_id == entity_id,
                )
            )
            return self._to_entity(record) if record is not None else None

    async def get_all(self) -> list[T]:
        async with self.session_maker() as session:
            records = await session.scalars(
                select(EntityRecord)
                .where(EntityRecord.entity_type == self.entity_type)
                .order_by(EntityRecord.seq)
            )
            return [self._to_entity(record) for record in records]

    async def delete(self, entity_id: str) -> bool:
        async with self.session_maker() as session, session.begin():
            record = await session.scalar(
                select(EntityRecord).where(
                    EntityRecord.entity_type == self.entity_type,
                    EntityRecord.entity_id == entity_id,
                )
            )
            if record is None:
                return False
            await session.delete(record)
            return True

    async def exists(self, entity_id: str) -> bool:
        async with self.session_maker() as session:
            found = await session.scalar(
                select(EntityRecord.seq).where(
                    EntityRecord.entity_type == self.entity_type,
                    EntityRecord.entity_id == entity_id,
                )
            )
            return found is not None

    async def count(self) -> int:
        async with self.session_maker() as session:
            total = await session.scalar(
                select(func.count())
                .select_from(EntityRecord)
                .where(EntityRecord.entity_type == self.entity_type)
            )
            return int(total or 0)

    async def find_all_by_index(self, field: str, value: Any) -> list[T]:
        self._check_indexed(field)
        normalized = index_value(value)
        value_clause = (
            EntityIndexEntry.value.is_(None)
            if normalized is None
            else EntityIndexEntry.value == normalized
        )

        async with self.session_maker() as session:
            records = await session.scalars(
                select(EntityRecord)
                .join(EntityIndexEntry, EntityIndexEntry.record_seq == EntityRecord.seq)
                .where(
                    EntityRecord.entity_type == self.entity_type,
                    EntityIndexEntry.field == field,
                    value_clause,
                )
                .order_by(EntityRecord.seq)
            )
            return [self._to_entity(record) for record in records.unique()]
