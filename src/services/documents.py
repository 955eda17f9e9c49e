"""
Evidence Document Operations.

Everything this core may change on a document: payment overrides,
classification, soft archival and archive rules. Documents themselves
are produced by the ingestion collaborator and stored through ``ingest``.
"""

from typing import Callable, Optional

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import DocumentClassification, DocumentSourceType
from src.db import Storage
from src.gateways.ingestion import ScanResult
from src.schemas.archive_rule import ArchiveRule, ArchiveRuleCreate, ArchiveRuleUpdate
from src.schemas.common import utcnow
from src.schemas.document import (
    MedicalDocument,
    MedicalDocumentCreate,
    MedicalDocumentUpdate,
    PaymentOverride,
    PaymentOverrideInput,
)
from src.utils.errors import ValidationError
from src.utils.logging import get_logger
from src.utils.retry import retry_on_conflict

logger = get_logger(__name__)


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def matches_archive_rule(rule: ArchiveRule, document: MedicalDocument) -> bool:
    """
    A rule matches when it is enabled, has at least one criterion and every
    present criterion is a case-insensitive substring of its field.
    """
    if not rule.enabled or not rule.has_criteria:
        return False

    checks = (
        (rule.from_contains, document.from_address),
        (rule.subject_contains, document.subject),
        (rule.attachment_name_contains, document.filename),
    )
    return all(
        _normalize(needle) in _normalize(haystack) for needle, haystack in checks if needle
    )


def archive_reason(rule: ArchiveRule) -> str:
    return f"Rule: {rule.name}"


def _document_key(document: MedicalDocument | MedicalDocumentCreate) -> tuple:
    """Identity of a document across ingestion scans."""
    if document.source_type == DocumentSourceType.CALENDAR:
        return (document.source_type.value, document.calendar_event_id)
    return (
        document.source_type.value,
        document.email_id,
        document.attachment_path or document.filename,
    )


class DocumentService:
    """Document mutations and archive rules."""

    def __init__(self, storage: Storage, settings: Optional[ReconcilerSettings] = None):
        self.storage = storage
        self.settings = settings or get_settings()

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get(self, document_id: str) -> Optional[MedicalDocument]:
        return await self.storage.documents.get(document_id)

    async def list_documents(
        self,
        include_archived: bool = False,
        source_type: Optional[DocumentSourceType] = None,
    ) -> list[MedicalDocument]:
        if source_type is not None:
            documents = await self.storage.documents.find_all_by_index("source_type", source_type)
        else:
            documents = await self.storage.documents.get_all()
        if include_archived:
            return documents
        return [document for document in documents if not document.is_archived]

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def create(self, data: MedicalDocumentCreate) -> MedicalDocument:
        """Store a new document, archiving it right away if a rule matches."""
        document = MedicalDocument(**data.model_dump())
        rule = await self.find_matching_archive_rule(document)
        if rule is not None:
            document.archived_at = utcnow()
            document.archived_by_rule_id = rule.id
            document.archived_reason = archive_reason(rule)
        return await self.storage.documents.save(document)

    async def ingest(self, result: ScanResult) -> dict[str, int]:
        """
        Upsert documents returned by an ingestion scan.

        Re-scanned documents keep their id, override and archive state.
        """
        existing = {
            _document_key(document): document
            for document in await self.storage.documents.get_all()
        }
        created = updated = 0

        for data in result.documents:
            current = existing.get(_document_key(data))
            if current is None:
                document = await self.create(data)
                existing[_document_key(document)] = document
                created += 1
                continue

            refreshed = MedicalDocument.model_validate(
                {**current.model_dump(), **data.model_dump(), "processed_at": utcnow()}
            )
            existing[_document_key(refreshed)] = await self.storage.documents.save(refreshed)
            updated += 1

        logger.info(
            f"Ingested {result.mode.value} scan: {created} created, {updated} updated, "
            f"{result.skipped} skipped"
        )
        return {"created": created, "updated": updated, "skipped": result.skipped}

    # =========================================================================
    # Mutations
    # =========================================================================

    async def _mutate(
        self, document_id: str, change: Callable[[MedicalDocument], None]
    ) -> Optional[MedicalDocument]:
        async def attempt() -> Optional[MedicalDocument]:
            document = await self.get(document_id)
            if document is None:
                return None
            change(document)
            return await self.storage.documents.save(document)

        return await retry_on_conflict(attempt, self.settings.CONFLICT_RETRY_ATTEMPTS)

    async def update(
        self, document_id: str, data: MedicalDocumentUpdate
    ) -> Optional[MedicalDocument]:
        def change(document: MedicalDocument) -> None:
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(document, field, value)

        return await self._mutate(document_id, change)

    async def update_classification(
        self, document_id: str, classification: DocumentClassification
    ) -> Optional[MedicalDocument]:
        def change(document: MedicalDocument) -> None:
            document.classification = classification

        return await self._mutate(document_id, change)

    async def set_payment_override(
        self, document_id: str, data: PaymentOverrideInput
    ) -> Optional[MedicalDocument]:
        """Record a manual payment correction; it outranks every detected amount."""

        def change(document: MedicalDocument) -> None:
            document.payment_override = PaymentOverride(
                amount=data.amount,
                currency=data.currency.upper(),
                note=data.note,
            )

        saved = await self._mutate(document_id, change)
        if saved is not None:
            logger.info(f"Payment override set on document {document_id}")
        return saved

    async def clear_payment_override(self, document_id: str) -> Optional[MedicalDocument]:
        def change(document: MedicalDocument) -> None:
            document.payment_override = None

        return await self._mutate(document_id, change)

    async def archive_document(
        self, document_id: str, reason: Optional[str] = None
    ) -> Optional[MedicalDocument]:
        def change(document: MedicalDocument) -> None:
            if document.is_archived:
                return
            document.archived_at = utcnow()
            document.archived_by_rule_id = None
            document.archived_reason = reason or "Archived manually"

        return await self._mutate(document_id, change)

    async def unarchive_document(self, document_id: str) -> Optional[MedicalDocument]:
        def change(document: MedicalDocument) -> None:
            document.archived_at = None
            document.archived_by_rule_id = None
            document.archived_reason = None

        return await self._mutate(document_id, change)

    # =========================================================================
    # Archive Rules
    # =========================================================================

    async def list_archive_rules(self) -> list[ArchiveRule]:
        rules = await self.storage.archive_rules.get_all()
        return sorted(rules, key=lambda rule: rule.created_at)

    async def get_archive_rule(self, rule_id: str) -> Optional[ArchiveRule]:
        return await self.storage.archive_rules.get(rule_id)

    async def create_archive_rule(self, data: ArchiveRuleCreate) -> ArchiveRule:
        rule = ArchiveRule(**data.model_dump())
        if not rule.has_criteria:
            raise ValidationError("Archive rule needs at least one criterion")
        saved = await self.storage.archive_rules.save(rule)
        logger.info(f"Archive rule {saved.id} ({saved.name}) created")
        return saved

    async def update_archive_rule(
        self, rule_id: str, data: ArchiveRuleUpdate
    ) -> Optional[ArchiveRule]:
        async def attempt() -> Optional[ArchiveRule]:
            rule = await self.get_archive_rule(rule_id)
            if rule is None:
                return None
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(rule, field, value)
            if not rule.has_criteria:
                raise ValidationError("Archive rule needs at least one criterion")
            rule.updated_at = utcnow()
            return await self.storage.archive_rules.save(rule)

        return await retry_on_conflict(attempt, self.settings.CONFLICT_RETRY_ATTEMPTS)

    async def delete_archive_rule(self, rule_id: str) -> bool:
        return await self.storage.archive_rules.delete(rule_id)

    async def find_matching_archive_rule(self, document: MedicalDocument) -> Optional[ArchiveRule]:
        """Oldest rule matching the document."""
        for rule in await self.list_archive_rules():
            if matches_archive_rule(rule, document):
                return rule
        return None

    async def apply_archive_rule_to_existing_documents(
        self, rule_id: str
    ) -> Optional[list[MedicalDocument]]:
        """
        Archive every active document the rule matches.

        Already archived documents are left alone, so re-applying a rule
        archives nothing new.
        """
        rule = await self.get_archive_rule(rule_id)
        if rule is None:
            return None

        archived = []
        for document in await self.storage.documents.get_all():
            if document.is_archived or not matches_archive_rule(rule, document):
                continue

            def change(target: MedicalDocument) -> None:
                if target.is_archived:
                    return
                target.archived_at = utcnow()
                target.archived_by_rule_id = rule.id
                target.archived_reason = archive_reason(rule)

            saved = await self._mutate(document.id, change)
            if saved is not None and saved.archived_by_rule_id == rule.id:
                archived.append(saved)

        logger.info(f"Archive rule {rule.name} archived {len(archived)} documents")
        return archived
