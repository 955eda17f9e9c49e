"""
Entity Record Models.

Every reconciliation entity is stored as a JSON payload keyed by
(entity_type, entity_id), with a version column for optimistic
concurrency. Indexed fields are mirrored into ``entity_index_entries``
so repository lookups run in SQL instead of scanning payloads.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base


class EntityRecord(Base):
    """One stored entity."""

    __tablename__ = "entity_records"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", name="uq_entity_records_type_id"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    # Bumped by the versioned UPDATE on every save
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    index_entries: Mapped[list["EntityIndexEntry"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<EntityRecord {self.entity_type}:{self.entity_id} v{self.version}>"


class EntityIndexEntry(Base):
    """Lookup value of one indexed field of an entity."""

    __tablename__ = "entity_index_entries"
    __table_args__ = (
        Index("ix_entity_index_lookup", "entity_type", "field", "value"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_seq: Mapped[int] = mapped_column(
        ForeignKey("entity_records.seq", ondelete="CASCADE"), nullable=False
    )
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    field: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    record: Mapped[EntityRecord] = relationship(back_populates="index_entries")
