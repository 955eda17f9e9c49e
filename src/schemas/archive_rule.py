"""
Pydantic Schemas for Archive Rules.

Rules archive documents automatically based on email/attachment metadata.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.schemas.common import StoredModel, utcnow


class ArchiveRule(StoredModel):
    """Substring criteria; every criterion present must match."""

    name: str
    enabled: bool = True
    from_contains: Optional[str] = None
    subject_contains: Optional[str] = None
    attachment_name_contains: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def has_criteria(self) -> bool:
        return bool(self.from_contains or self.subject_contains or self.attachment_name_contains)


class ArchiveRuleCreate(BaseModel):
    """Input for creating an archive rule."""

    name: str = Field(..., min_length=1, max_length=200)
    enabled: bool = True
    from_contains: Optional[str] = None
    subject_contains: Optional[str] = None
    attachment_name_contains: Optional[str] = None


class ArchiveRuleUpdate(BaseModel):
    """Input for editing an archive rule."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    enabled: Optional[bool] = None
    from_contains: Optional[str] = None
    subject_contains: Optional[str] = None
    attachment_name_contains: Optional[str] = None
