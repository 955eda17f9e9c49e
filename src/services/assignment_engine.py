"""
Document-Claim Assignment Engine.

Persists scored links between evidence documents and insurer claims and
drives their review state machine:

    CANDIDATE -> CONFIRMED   (requires illness_id, stamps confirmed_at/by)
    CANDIDATE -> REJECTED    (stamps review_notes)

Confirmed and rejected assignments are final here; re-opening a decision
is an explicit correction outside this engine.
"""

from typing import Iterable, Optional

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import AssignmentStatus, DocumentClassification, MatchReasonType
from src.db import Storage
from src.schemas.assignment import (
    AssignmentConfirm,
    AssignmentCreate,
    AssignmentStats,
    DocumentClaimAssignment,
    ManualAssignmentCreate,
    MatchStats,
)
from src.schemas.claim import ScrapedClaim, ScrapedClaimCreate
from src.schemas.common import dedupe_ids, utcnow
from src.schemas.document import MedicalDocument
from src.services.match_scorer import MatchScorer
from src.services.payment_signal import has_payment_signal
from src.utils.errors import NotFoundError, ValidationError
from src.utils.logging import get_logger

logger = get_logger(__name__)

SCORE_BUCKETS = (
    ("90-100", 90),
    ("80-89", 80),
    ("70-79", 70),
    ("60-69", 60),
    ("50-59", 0),
)


def is_matchable(document: MedicalDocument) -> bool:
    """Bills with a payment signal, or dated calendar entries."""
    if document.is_archived:
        return False
    if document.is_calendar:
        return document.effective_date is not None
    return has_payment_signal(document)


def bucket_scores(scores: Iterable[float]) -> dict[str, int]:
    buckets = {label: 0 for label, _ in SCORE_BUCKETS}
    for score in scores:
        for label, floor in SCORE_BUCKETS:
            if score >= floor:
                buckets[label] += 1
                break
    return buckets


class AssignmentEngine:
    """Creates, reviews and re-generates document-claim assignments."""

    def __init__(
        self,
        storage: Storage,
        scorer: Optional[MatchScorer] = None,
        settings: Optional[ReconcilerSettings] = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self.scorer = scorer or MatchScorer(self.settings.match_thresholds)

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get(self, assignment_id: str) -> Optional[DocumentClaimAssignment]:
        return await self.storage.assignments.get(assignment_id)

    async def get_all(self) -> list[DocumentClaimAssignment]:
        return await self.storage.assignments.get_all()

    async def get_by_status(self, status: AssignmentStatus) -> list[DocumentClaimAssignment]:
        return await self.storage.assignments.find_all_by_index("status", status)

    async def get_for_document(self, document_id: str) -> list[DocumentClaimAssignment]:
        return await self.storage.assignments.find_all_by_index("document_id", document_id)

    async def get_for_claim(self, claim_id: str) -> list[DocumentClaimAssignment]:
        return await self.storage.assignments.find_all_by_index("claim_id", claim_id)

    async def get_for_pair(
        self, document_id: str, claim_id: str
    ) -> Optional[DocumentClaimAssignment]:
        for assignment in await self.get_for_document(document_id):
            if assignment.claim_id == claim_id:
                return assignment
        return None

    async def has_confirmed_assignment(self, document_id: str) -> bool:
        return any(
            assignment.status == AssignmentStatus.CONFIRMED
            for assignment in await self.get_for_document(document_id)
        )

    async def get_high_confidence_candidates(
        self, min_score: Optional[float] = None
    ) -> list[DocumentClaimAssignment]:
        """Candidates at or above min_score, best first."""
        threshold = min_score if min_score is not None else self.settings.HIGH_CONFIDENCE_SCORE
        candidates = [
            assignment
            for assignment in await self.get_by_status(AssignmentStatus.CANDIDATE)
            if assignment.match_score >= threshold
        ]
        return sorted(candidates, key=lambda assignment: assignment.match_score, reverse=True)

    async def get_stats(self) -> AssignmentStats:
        assignments = await self.get_all()
        counts = {status: 0 for status in AssignmentStatus}
        for assignment in assignments:
            counts[assignment.status] += 1
        avg = (
            sum(assignment.match_score for assignment in assignments) / len(assignments)
            if assignments
            else 0.0
        )
        return AssignmentStats(
            total=len(assignments),
            candidates=counts[AssignmentStatus.CANDIDATE],
            confirmed=counts[AssignmentStatus.CONFIRMED],
            rejected=counts[AssignmentStatus.REJECTED],
            avg_match_score=avg,
        )

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_candidate(self, data: AssignmentCreate) -> DocumentClaimAssignment:
        assignment = DocumentClaimAssignment(
            document_id=data.document_id,
            claim_id=data.claim_id,
            match_score=data.match_score,
            match_reason_type=data.match_reason_type,
            match_reason=data.match_reason,
            amount_match_details=data.amount_match_details,
            date_match_details=data.date_match_details,
        )
        return await self.storage.assignments.save(assignment)

    async def create_manual_assignment(
        self, data: ManualAssignmentCreate
    ) -> DocumentClaimAssignment:
        """Link a document to a claim by hand; returns the existing link for the pair if any."""
        if not await self.storage.documents.exists(data.document_id):
            raise NotFoundError(f"Document not found: {data.document_id}")
        if not await self.storage.scraped_claims.exists(data.claim_id):
            raise NotFoundError(f"Claim not found: {data.claim_id}")

        existing = await self.get_for_pair(data.document_id, data.claim_id)
        if existing is not None:
            return existing

        assignment = DocumentClaimAssignment(
            document_id=data.document_id,
            claim_id=data.claim_id,
            match_score=100,
            match_reason_type=MatchReasonType.MANUAL,
            match_reason="Manual assignment",
            review_notes=data.review_notes,
        )
        saved = await self.storage.assignments.save(assignment)
        logger.info(f"Manual assignment {saved.id}: {data.document_id} -> {data.claim_id}")
        return saved

    # =========================================================================
    # Review
    # =========================================================================

    async def confirm(
        self, assignment_id: str, data: AssignmentConfirm
    ) -> Optional[DocumentClaimAssignment]:
        """
        Confirm a candidate.

        Returns None when the assignment does not exist.

        Raises:
            ValidationError: illness_id missing, assignment not a candidate, or
                the document already has another confirmed assignment
        """
        if not data.illness_id:
            raise ValidationError("illness_id is required to confirm an assignment")

        assignment = await self.get(assignment_id)
        if assignment is None:
            return None
        if assignment.status != AssignmentStatus.CANDIDATE:
            raise ValidationError(
                f"Only candidate assignments can be confirmed (status: {assignment.status.value})"
            )

        if not self.settings.ALLOW_MULTIPLE_CONFIRMED:
            others = [
                other
                for other in await self.get_for_document(assignment.document_id)
                if other.id != assignment.id and other.status == AssignmentStatus.CONFIRMED
            ]
            if others:
                raise ValidationError(
                    f"Document {assignment.document_id} already has a confirmed assignment"
                )

        now = utcnow()
        confirmed = assignment.model_copy(
            update={
                "status": AssignmentStatus.CONFIRMED,
                "illness_id": data.illness_id,
                "confirmed_at": now,
                "confirmed_by": data.confirmed_by,
                "review_notes": data.review_notes or assignment.review_notes,
                "updated_at": now,
            }
        )
        saved = await self.storage.assignments.save(confirmed)
        logger.info(f"Assignment {assignment_id} confirmed for illness {data.illness_id}")
        return saved

    async def reject(
        self, assignment_id: str, review_notes: Optional[str] = None
    ) -> Optional[DocumentClaimAssignment]:
        """Reject a candidate; None when the assignment does not exist."""
        assignment = await self.get(assignment_id)
        if assignment is None:
            return None
        if assignment.status != AssignmentStatus.CANDIDATE:
            raise ValidationError(
                f"Only candidate assignments can be rejected (status: {assignment.status.value})"
            )

        assignment.status = AssignmentStatus.REJECTED
        assignment.review_notes = review_notes
        assignment.updated_at = utcnow()
        saved = await self.storage.assignments.save(assignment)
        logger.info(f"Assignment {assignment_id} rejected")
        return saved

    async def clear_candidates_for_document(self, document_id: str) -> int:
        """Delete candidate assignments of a document; reviewed ones are kept."""
        cleared = 0
        for assignment in await self.get_for_document(document_id):
            if assignment.status == AssignmentStatus.CANDIDATE:
                if await self.storage.assignments.delete(assignment.id):
                    cleared += 1
        return cleared

    # =========================================================================
    # Insurer Claims
    # =========================================================================

    async def list_scraped_claims(self, include_archived: bool = False) -> list[ScrapedClaim]:
        claims = await self.storage.scraped_claims.get_all()
        if include_archived:
            return claims
        return [claim for claim in claims if claim.archived_at is None]

    async def get_scraped_claim(self, claim_id: str) -> Optional[ScrapedClaim]:
        return await self.storage.scraped_claims.get(claim_id)

    async def upsert_scraped_claim(self, data: ScrapedClaimCreate) -> ScrapedClaim:
        """Store an insurer-reported claim, replacing the one with the same claim number."""
        current = await self.storage.scraped_claims.find_by_index("claim_number", data.claim_number)
        if current is None:
            return await self.storage.scraped_claims.save(ScrapedClaim(**data.model_dump()))

        refreshed = ScrapedClaim.model_validate(
            {**current.model_dump(), **data.model_dump(), "scraped_at": utcnow()}
        )
        return await self.storage.scraped_claims.save(refreshed)

    # =========================================================================
    # Matching Runs
    # =========================================================================

    async def _active_claims(self) -> list[ScrapedClaim]:
        return await self.list_scraped_claims()

    async def match_document(
        self,
        document: MedicalDocument,
        claims: Optional[list[ScrapedClaim]] = None,
    ) -> list[DocumentClaimAssignment]:
        """
        Score a document against every active claim and store the top candidates.

        Stale candidates for the document are cleared first; a pair that
        already has a reviewed assignment keeps it instead of getting a new one.
        """
        if not is_matchable(document):
            return []

        claims = claims if claims is not None else await self._active_claims()
        scored = []
        for claim in claims:
            result = self.scorer.score(document, claim)
            if result.is_candidate:
                scored.append((claim, result))

        scored.sort(key=lambda pair: pair[1].score, reverse=True)
        top = scored[: self.settings.MAX_CANDIDATES_PER_DOCUMENT]

        await self.clear_candidates_for_document(document.id)

        assignments = []
        for claim, result in top:
            existing = await self.get_for_pair(document.id, claim.id)
            if existing is not None:
                assignments.append(existing)
                continue
            assignments.append(
                await self.create_candidate(
                    AssignmentCreate(
                        document_id=document.id,
                        claim_id=claim.id,
                        match_score=result.score,
                        match_reason_type=result.reason_type,
                        match_reason=result.reason,
                        amount_match_details=result.amount_match_details,
                        date_match_details=result.date_match_details,
                    )
                )
            )
        return assignments

    async def _match_many(
        self, documents: list[MedicalDocument], total_documents: int
    ) -> MatchStats:
        claims = await self._active_claims()
        matchable = [
            document
            for document in documents
            if is_matchable(document)
            and (
                document.is_calendar
                or document.classification
                in (DocumentClassification.MEDICAL_BILL, DocumentClassification.RECEIPT)
                or document.payment_override is not None
            )
        ]

        created: list[DocumentClaimAssignment] = []
        for document in matchable:
            created.extend(
                assignment
                for assignment in await self.match_document(document, claims)
                if assignment.status == AssignmentStatus.CANDIDATE
            )

        scores = [assignment.match_score for assignment in created]
        logger.info(
            f"Matched {len(matchable)} documents against {len(claims)} claims: "
            f"{len(created)} candidates"
        )
        return MatchStats(
            total_documents=total_documents,
            matchable_documents=len(matchable),
            total_claims=len(claims),
            candidates_created=len(created),
            avg_match_score=sum(scores) / len(scores) if scores else 0.0,
            matches_by_score=bucket_scores(scores),
        )

    async def match_all_documents(self) -> MatchStats:
        """Run matching over the full document and claim pool."""
        documents = await self.storage.documents.get_all()
        return await self._match_many(documents, len(documents))

    async def match_documents_by_ids(self, document_ids: list[str]) -> MatchStats:
        """Run matching over selected documents; unknown ids are skipped."""
        documents = []
        for document_id in dedupe_ids(document_ids):
            document = await self.storage.documents.get(document_id)
            if document is not None:
                documents.append(document)
        return await self._match_many(documents, len(documents))
