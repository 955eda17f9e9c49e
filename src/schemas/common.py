"""
Shared schema building blocks.
"""

from datetime import date, datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def generate_id() -> str:
    """Generate a new entity identifier."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so mixed inputs compare cleanly."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    return value


def dedupe_ids(ids: Iterable[str]) -> list[str]:
    """Return ids without duplicates, preserving first-seen order."""
    return list(dict.fromkeys(ids))


class StoredModel(BaseModel):
    """
    Base for every entity persisted through a repository.

    ``version`` is owned by the repository: 0 means never stored, and each
    successful save increments it.
    """

    model_config = ConfigDict(use_enum_values=False, validate_assignment=True)

    id: str = Field(default_factory=generate_id)
    version: int = Field(default=0, ge=0)


def optional_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None
