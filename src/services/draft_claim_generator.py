"""
Draft Claim Generator.

Builds pending draft claims from payment documents that are not linked to
anything yet. A document qualifies when it is active, has an eligible
source type, offers a payment signal, falls inside the requested window
and is referenced by neither a candidate/confirmed assignment nor an
existing draft. Attachments of one email become a single draft.

Running the generator again over the same window creates nothing new,
since every qualifying document is referenced by a draft after the
first run.
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import DRAFT_RANGE_DAYS, AssignmentStatus, DraftClaimRange, DraftClaimStatus
from src.db import Storage
from src.schemas.common import dedupe_ids, ensure_utc, utcnow
from src.schemas.document import MedicalDocument
from src.schemas.draft_claim import DraftClaim, DraftClaimCreate
from src.services.document_grouping import get_active_documents, group_documents
from src.services.draft_claims import DraftClaimService
from src.services.payment_signal import PaymentSignalResolver, has_payment_signal
from src.utils.errors import ConflictError
from src.utils.logging import get_logger

logger = get_logger(__name__)

LINKING_ASSIGNMENT_STATUSES = (AssignmentStatus.CANDIDATE, AssignmentStatus.CONFIRMED)


def is_within_range(document: MedicalDocument, range_: DraftClaimRange, as_of: datetime) -> bool:
    """
    Check a document date against a lookback window ending at ``as_of``.

    Undated documents only qualify for ``forever``.
    """
    days = DRAFT_RANGE_DAYS[range_]
    if days is None:
        return True
    if document.date is None:
        return False
    as_of = ensure_utc(as_of)
    return as_of - timedelta(days=days) <= document.date <= as_of


class DraftClaimGenerator:
    """Generates draft claims for unlinked payment documents."""

    def __init__(
        self,
        storage: Storage,
        draft_claims: Optional[DraftClaimService] = None,
        payment_resolver: Optional[PaymentSignalResolver] = None,
        settings: Optional[ReconcilerSettings] = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self.draft_claims = draft_claims or DraftClaimService(storage, self.settings)
        self.payment_resolver = payment_resolver or PaymentSignalResolver(
            self.settings.DEFAULT_CURRENCY, self.settings.EMPTY_PAYMENT_CONTEXT
        )

    async def _linked_document_ids(self) -> set[str]:
        linked = await self.draft_claims.get_referenced_document_ids()
        for assignment in await self.storage.assignments.get_all():
            if assignment.status in LINKING_ASSIGNMENT_STATUSES:
                linked.add(assignment.document_id)
        return linked

    async def generate(
        self,
        range_: DraftClaimRange = DraftClaimRange.FOREVER,
        as_of: Optional[datetime] = None,
    ) -> list[DraftClaim]:
        """
        Create drafts for qualifying documents.

        Args:
            range_: Lookback window
            as_of: End of the window; defaults to now

        Returns:
            Drafts created by this run, in document order
        """
        range_ = DraftClaimRange(range_)
        as_of = ensure_utc(as_of) if as_of is not None else utcnow()
        linked = await self._linked_document_ids()
        source_types = set(self.settings.DRAFT_SOURCE_TYPES)

        qualifying = [
            document
            for document in get_active_documents(await self.storage.documents.get_all())
            if document.source_type in source_types
            and has_payment_signal(document)
            and document.id not in linked
            and is_within_range(document, range_, as_of)
        ]

        created: list[DraftClaim] = []
        covered: set[str] = set()
        for document in qualifying:
            if document.id in covered:
                continue

            group = group_documents(document, qualifying)
            group_ids = dedupe_ids(member.id for member in group)
            covered.update(group_ids)

            resolved = self.payment_resolver.resolve_group(group)
            if resolved.is_empty:
                continue

            try:
                draft = await self.draft_claims.create(
                    DraftClaimCreate(
                        primary_document_id=resolved.primary_document_id or document.id,
                        document_ids=group_ids,
                        payment=resolved.payment,
                        status=DraftClaimStatus.PENDING,
                    )
                )
            except (PydanticValidationError, ConflictError) as e:
                logger.warning(f"Skipping draft for documents {group_ids}: {e}")
                continue
            created.append(draft)

        logger.info(
            f"Draft generation ({range_.value}, as of {as_of.date()}): "
            f"{len(qualifying)} qualifying documents, {len(created)} drafts created"
        )
        return created
