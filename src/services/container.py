"""
Service wiring.

Builds every reconciliation service on top of one Storage and one pair
of collaborator gateways. The API and the background worker both obtain
their services from here.
"""

from typing import Optional

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import StorageBackend
from src.db import Storage, close_db_connection, create_storage
from src.gateways.ingestion import IngestionGateway, NullIngestionGateway
from src.gateways.submission import NullSubmissionGateway, SubmissionGateway
from src.services.assignment_engine import AssignmentEngine
from src.services.claim_state_machine import ClaimLifecycleService
from src.services.documents import DocumentService
from src.services.draft_claim_generator import DraftClaimGenerator
from src.services.draft_claim_promoter import DraftClaimPromoter
from src.services.draft_claims import DraftClaimService
from src.services.match_scorer import MatchScorer
from src.services.payment_proof import ProofDocumentResolver
from src.services.payment_signal import PaymentSignalResolver
from src.services.scheduler import ReconciliationScheduler


class ServiceContainer:
    """All services sharing one storage and configuration."""

    def __init__(
        self,
        storage: Storage,
        settings: Optional[ReconcilerSettings] = None,
        ingestion: Optional[IngestionGateway] = None,
        submission: Optional[SubmissionGateway] = None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage

        timeout = self.settings.COLLABORATOR_TIMEOUT_SECONDS
        self.ingestion = ingestion or NullIngestionGateway(timeout)
        self.submission = submission or NullSubmissionGateway(timeout)

        self.payment_resolver = PaymentSignalResolver(
            self.settings.DEFAULT_CURRENCY, self.settings.EMPTY_PAYMENT_CONTEXT
        )
        self.proof_resolver = ProofDocumentResolver(
            self.settings.PROOF_MAX_DOCUMENTS,
            self.settings.PROOF_DATE_WINDOW_DAYS,
            self.settings.PROOF_AMOUNT_EPSILON,
        )
        self.scorer = MatchScorer(self.settings.match_thresholds)

        self.documents = DocumentService(storage, self.settings)
        self.assignments = AssignmentEngine(storage, self.scorer, self.settings)
        self.draft_claims = DraftClaimService(storage, self.settings)
        self.generator = DraftClaimGenerator(
            storage, self.draft_claims, self.payment_resolver, self.settings
        )
        self.promoter = DraftClaimPromoter(
            storage, self.draft_claims, self.payment_resolver, self.proof_resolver, self.settings
        )
        self.lifecycle = ClaimLifecycleService(storage, self.submission, settings=self.settings)
        self.scheduler = ReconciliationScheduler(
            documents=self.documents,
            ingestion=self.ingestion,
            assignments=self.assignments,
            generator=self.generator,
            lifecycle=self.lifecycle,
            submission=self.submission,
            settings=self.settings,
        )

    @classmethod
    async def create(
        cls,
        settings: Optional[ReconcilerSettings] = None,
        ingestion: Optional[IngestionGateway] = None,
        submission: Optional[SubmissionGateway] = None,
    ) -> "ServiceContainer":
        """Build a container on the configured storage backend."""
        settings = settings or get_settings()
        storage = await create_storage(settings)
        return cls(storage, settings, ingestion, submission)

    async def close(self) -> None:
        await self.scheduler.stop()
        if self.storage.backend == StorageBackend.SQL:
            await close_db_connection()
