"""
Storage layer for the reconciliation engine.

``Storage`` groups one repository per entity type. Services depend on it
rather than on a concrete backend, so the in-memory and SQL backings are
interchangeable.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import StorageBackend
from src.db.connection import (
    check_db_connection,
    close_db_connection,
    create_session_maker,
    create_tables,
    get_engine,
    get_session_maker,
)
from src.db.memory import InMemoryRepository
from src.db.repository import IndexedRepository, Repository
from src.db.sql_repository import SqlRepository
from src.schemas.archive_rule import ArchiveRule
from src.schemas.assignment import DocumentClaimAssignment
from src.schemas.claim import Claim, ScrapedClaim
from src.schemas.document import MedicalDocument
from src.schemas.draft_claim import DraftClaim

# entity name -> (model, indexed fields)
ENTITY_TYPES = {
    "documents": (MedicalDocument, ("email_id", "source_type", "classification")),
    "scraped_claims": (ScrapedClaim, ("claim_number",)),
    "assignments": (DocumentClaimAssignment, ("document_id", "claim_id", "status")),
    "draft_claims": (DraftClaim, ("primary_document_id", "status")),
    "claims": (Claim, ("draft_claim_id", "status")),
    "archive_rules": (ArchiveRule, ("enabled",)),
}


@dataclass
class Storage:
    """One repository per entity type."""

    documents: IndexedRepository[MedicalDocument]
    scraped_claims: IndexedRepository[ScrapedClaim]
    assignments: IndexedRepository[DocumentClaimAssignment]
    draft_claims: IndexedRepository[DraftClaim]
    claims: IndexedRepository[Claim]
    archive_rules: IndexedRepository[ArchiveRule]
    backend: StorageBackend = StorageBackend.MEMORY


def create_memory_storage() -> Storage:
    repositories = {
        name: InMemoryRepository(name, indexed_fields)
        for name, (_, indexed_fields) in ENTITY_TYPES.items()
    }
    return Storage(**repositories, backend=StorageBackend.MEMORY)


def create_sql_storage(session_maker: async_sessionmaker[AsyncSession]) -> Storage:
    repositories = {
        name: SqlRepository(session_maker, model_cls, name, indexed_fields)
        for name, (model_cls, indexed_fields) in ENTITY_TYPES.items()
    }
    return Storage(**repositories, backend=StorageBackend.SQL)


async def create_storage(settings: Optional[ReconcilerSettings] = None) -> Storage:
    """Build storage for the configured backend, creating SQL tables if needed."""
    settings = settings or get_settings()
    if settings.STORAGE_BACKEND == StorageBackend.SQL:
        engine = get_engine(settings.DATABASE_URL)
        await create_tables(engine)
        return create_sql_storage(get_session_maker(settings.DATABASE_URL))
    return create_memory_storage()


__all__ = [
    "Storage",
    "Repository",
    "IndexedRepository",
    "InMemoryRepository",
    "SqlRepository",
    "ENTITY_TYPES",
    "create_storage",
    "create_memory_storage",
    "create_sql_storage",
    "create_session_maker",
    "create_tables",
    "get_engine",
    "get_session_maker",
    "close_db_connection",
    "check_db_connection",
]
