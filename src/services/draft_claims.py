"""
Draft Claim Service.

Storage-facing operations on draft claims and their review flow:

    PENDING -> ACCEPTED   (requires illness_id and treatment_date)
    PENDING -> REJECTED

Mutations are read-modify-write against the latest stored draft and are
retried on a conflicting concurrent update. Operations on a missing id
return None so callers decide how to surface it.
"""

from datetime import date
from typing import Callable, Iterable, Optional

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import DRAFT_CLAIM_STATUS_PRIORITY, DraftClaimDateSource, DraftClaimStatus
from src.db import Storage
from src.schemas.common import as_date, dedupe_ids, utcnow
from src.schemas.draft_claim import (
    DraftClaim,
    DraftClaimAccept,
    DraftClaimCreate,
    DraftClaimUpdate,
)
from src.utils.errors import NotFoundError, ValidationError
from src.utils.logging import get_logger
from src.utils.retry import retry_on_conflict

logger = get_logger(__name__)


def _require_pending(draft: DraftClaim, action: str) -> None:
    if draft.status != DraftClaimStatus.PENDING:
        raise ValidationError(
            f"Only pending draft claims can be {action} (status: {draft.status.value})"
        )


class DraftClaimService:
    """Create, look up and review draft claims."""

    def __init__(self, storage: Storage, settings: Optional[ReconcilerSettings] = None):
        self.storage = storage
        self.settings = settings or get_settings()

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get(self, draft_id: str) -> Optional[DraftClaim]:
        return await self.storage.draft_claims.get(draft_id)

    async def get_all(self) -> list[DraftClaim]:
        return await self.storage.draft_claims.get_all()

    async def get_by_status(self, status: DraftClaimStatus) -> list[DraftClaim]:
        return await self.storage.draft_claims.find_all_by_index("status", status)

    async def list_for_review(self) -> list[DraftClaim]:
        """Pending first, then accepted, then rejected; newest first within a status."""
        drafts = sorted(await self.get_all(), key=lambda d: d.generated_at, reverse=True)
        return sorted(drafts, key=lambda d: DRAFT_CLAIM_STATUS_PRIORITY[d.status])

    async def find_for_document(self, document_id: str) -> Optional[DraftClaim]:
        """First draft whose document set contains the document."""
        for draft in await self.get_all():
            if document_id in draft.document_ids:
                return draft
        return None

    async def find_overlapping(self, document_ids: Iterable[str]) -> Optional[DraftClaim]:
        """First draft sharing at least one document with the given ids."""
        wanted = set(document_ids)
        for draft in await self.get_all():
            if wanted.intersection(draft.document_ids):
                return draft
        return None

    async def get_referenced_document_ids(self) -> set[str]:
        referenced: set[str] = set()
        for draft in await self.get_all():
            referenced.update(draft.document_ids)
        return referenced

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, data: DraftClaimCreate) -> DraftClaim:
        draft = DraftClaim(
            status=data.status,
            primary_document_id=data.primary_document_id,
            document_ids=data.document_ids,
            payment=data.payment,
            payment_proof_document_ids=data.payment_proof_document_ids,
            illness_id=data.illness_id,
            treatment_date=data.treatment_date,
            treatment_date_source=data.treatment_date_source,
        )
        saved = await self.storage.draft_claims.save(draft)
        logger.info(f"Draft claim {saved.id} created for document {saved.primary_document_id}")
        return saved

    async def _mutate(
        self, draft_id: str, change: Callable[[DraftClaim], None]
    ) -> Optional[DraftClaim]:
        async def attempt() -> Optional[DraftClaim]:
            draft = await self.get(draft_id)
            if draft is None:
                return None
            change(draft)
            draft.updated_at = utcnow()
            return await self.storage.draft_claims.save(draft)

        return await retry_on_conflict(attempt, self.settings.CONFLICT_RETRY_ATTEMPTS)

    async def update(self, draft_id: str, data: DraftClaimUpdate) -> Optional[DraftClaim]:
        """Edit reviewer fields of a pending draft."""

        def change(draft: DraftClaim) -> None:
            _require_pending(draft, "edited")
            if data.illness_id is not None:
                draft.illness_id = data.illness_id
            if data.doctor_notes is not None:
                draft.doctor_notes = data.doctor_notes
            if data.treatment_date is not None:
                draft.treatment_date = data.treatment_date
                draft.treatment_date_source = DraftClaimDateSource.MANUAL

        return await self._mutate(draft_id, change)

    async def accept(self, draft_id: str, data: DraftClaimAccept) -> Optional[DraftClaim]:
        """
        Accept a pending draft.

        Raises:
            ValidationError: draft not pending, or no illness/treatment date
                given or already recorded
        """

        def change(draft: DraftClaim) -> None:
            _require_pending(draft, "accepted")
            illness_id = data.illness_id or draft.illness_id
            treatment_date = data.treatment_date or draft.treatment_date
            if not illness_id:
                raise ValidationError("illness_id is required to accept a draft claim")
            if treatment_date is None:
                raise ValidationError("treatment_date is required to accept a draft claim")
            if data.treatment_date is not None:
                draft.treatment_date_source = DraftClaimDateSource.MANUAL
            draft.illness_id = illness_id
            draft.treatment_date = treatment_date
            draft.status = DraftClaimStatus.ACCEPTED
            draft.accepted_at = utcnow()

        saved = await self._mutate(draft_id, change)
        if saved is not None:
            logger.info(f"Draft claim {draft_id} accepted")
        return saved

    async def reject(self, draft_id: str) -> Optional[DraftClaim]:
        def change(draft: DraftClaim) -> None:
            _require_pending(draft, "rejected")
            draft.status = DraftClaimStatus.REJECTED
            draft.rejected_at = utcnow()

        saved = await self._mutate(draft_id, change)
        if saved is not None:
            logger.info(f"Draft claim {draft_id} rejected")
        return saved

    async def set_treatment_date(self, draft_id: str, treatment_date: date) -> Optional[DraftClaim]:
        def change(draft: DraftClaim) -> None:
            draft.treatment_date = treatment_date
            draft.treatment_date_source = DraftClaimDateSource.MANUAL

        return await self._mutate(draft_id, change)

    async def attach_calendar_evidence(
        self, draft_id: str, calendar_document_id: str
    ) -> Optional[DraftClaim]:
        """
        Use a calendar entry as treatment-date evidence.

        Raises:
            NotFoundError: calendar document missing
            ValidationError: document is not calendar-derived or has no date
        """
        calendar_document = await self.storage.documents.get(calendar_document_id)
        if calendar_document is None:
            raise NotFoundError(f"Document not found: {calendar_document_id}")
        if not calendar_document.is_calendar:
            raise ValidationError(f"Document {calendar_document_id} is not a calendar entry")
        event_date = calendar_document.effective_date
        if event_date is None:
            raise ValidationError(f"Calendar entry {calendar_document_id} has no date")

        def change(draft: DraftClaim) -> None:
            draft.treatment_date = as_date(event_date)
            draft.treatment_date_source = DraftClaimDateSource.CALENDAR
            draft.calendar_document_ids = dedupe_ids(
                [*draft.calendar_document_ids, calendar_document_id]
            )
            draft.document_ids = dedupe_ids([*draft.document_ids, calendar_document_id])

        return await self._mutate(draft_id, change)
