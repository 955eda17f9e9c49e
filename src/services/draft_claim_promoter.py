"""
Draft Claim Promotion.

Turns a user-selected document into a draft claim:

    1. Restrict to active documents
    2. Expand the selection into its evidence group
    3. Resolve the group payment; its source document becomes primary
    4. Resolve proof documents for that payment
    5. Merge into a draft overlapping the group, or create a new one

Promoting the same or an overlapping selection again never duplicates
document ids and never drops documents already attached to the draft.
"""

from typing import Iterable, Optional

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import DraftClaimStatus
from src.db import Storage
from src.schemas.common import dedupe_ids, utcnow
from src.schemas.document import MedicalDocument
from src.schemas.draft_claim import DraftClaim, DraftClaimCreate, PromoteDraftResult
from src.services.document_grouping import get_active_documents, group_documents
from src.services.draft_claims import DraftClaimService
from src.services.payment_proof import ProofDocumentResolver, ProofResolver
from src.services.payment_signal import PaymentSignalResolver
from src.utils.errors import NotFoundError
from src.utils.logging import get_logger
from src.utils.retry import retry_on_conflict

logger = get_logger(__name__)


class DraftClaimPromoter:
    """Creates or expands draft claims from selected documents."""

    def __init__(
        self,
        storage: Storage,
        draft_claims: Optional[DraftClaimService] = None,
        payment_resolver: Optional[PaymentSignalResolver] = None,
        proof_resolver: Optional[ProofResolver] = None,
        settings: Optional[ReconcilerSettings] = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self.draft_claims = draft_claims or DraftClaimService(storage, self.settings)
        self.payment_resolver = payment_resolver or PaymentSignalResolver(
            self.settings.DEFAULT_CURRENCY, self.settings.EMPTY_PAYMENT_CONTEXT
        )
        self.proof_resolver = proof_resolver or ProofDocumentResolver(
            self.settings.PROOF_MAX_DOCUMENTS,
            self.settings.PROOF_DATE_WINDOW_DAYS,
            self.settings.PROOF_AMOUNT_EPSILON,
        )

    async def promote(
        self,
        selected: MedicalDocument,
        documents: Optional[Iterable[MedicalDocument]] = None,
    ) -> PromoteDraftResult:
        """
        Promote a document into a draft claim.

        Args:
            selected: Document chosen by the user
            documents: Document pool; loaded from storage when omitted

        Raises:
            ConflictError: the overlapping draft kept changing underneath
                every retry
        """
        pool = list(documents) if documents is not None else await self.storage.documents.get_all()
        active = get_active_documents(pool)

        group = group_documents(selected, active)
        group_ids = dedupe_ids(document.id for document in group)

        resolved = self.payment_resolver.resolve_group(group)
        primary_id = resolved.primary_document_id or selected.id
        primary = next((document for document in group if document.id == primary_id), selected)

        proof_ids = [
            proof_id
            for proof_id in self.proof_resolver.resolve(active, primary, resolved.payment)
            if proof_id != primary.id
        ]
        merged_ids = dedupe_ids([*group_ids, *proof_ids])

        async def attempt() -> PromoteDraftResult:
            existing = await self.draft_claims.find_overlapping(group_ids)
            if existing is None:
                draft = await self.draft_claims.create(
                    DraftClaimCreate(
                        primary_document_id=primary_id,
                        document_ids=merged_ids,
                        payment=resolved.payment,
                        payment_proof_document_ids=proof_ids,
                        status=DraftClaimStatus.PENDING,
                    )
                )
                return PromoteDraftResult(draft=draft, created=True, expanded=False)
            return await self._merge(existing, merged_ids, proof_ids)

        result = await retry_on_conflict(attempt, self.settings.CONFLICT_RETRY_ATTEMPTS)
        logger.info(
            f"Promoted document {selected.id} -> draft {result.draft.id} "
            f"(created={result.created}, expanded={result.expanded})"
        )
        return result

    async def promote_by_id(self, document_id: str) -> PromoteDraftResult:
        selected = await self.storage.documents.get(document_id)
        if selected is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return await self.promote(selected)

    async def _merge(
        self, existing: DraftClaim, merged_ids: list[str], proof_ids: list[str]
    ) -> PromoteDraftResult:
        document_ids = dedupe_ids([*existing.document_ids, *merged_ids])
        payment_proof_ids = dedupe_ids([*existing.payment_proof_document_ids, *proof_ids])

        if (
            document_ids == existing.document_ids
            and payment_proof_ids == existing.payment_proof_document_ids
        ):
            return PromoteDraftResult(draft=existing, created=False, expanded=False)

        existing.payment_proof_document_ids = payment_proof_ids
        existing.document_ids = document_ids
        existing.updated_at = utcnow()
        # Saved against the version read in this attempt; a racing writer raises ConflictError
        saved = await self.storage.draft_claims.save(existing)
        return PromoteDraftResult(draft=saved, created=False, expanded=True)
