"""
SQLAlchemy Models for the SQL storage backend.
"""

from src.models.base import Base
from src.models.record import EntityIndexEntry, EntityRecord

__all__ = [
    "Base",
    "EntityRecord",
    "EntityIndexEntry",
]
