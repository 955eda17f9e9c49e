"""
Services Layer for the Claim Reconciler.

Exports the matching, draft claim and lifecycle services.
"""

from src.services.assignment_engine import AssignmentEngine
from src.services.claim_state_machine import (
    ClaimLifecycleService,
    ClaimStateMachine,
    get_claim_state_machine,
)
from src.services.document_grouping import get_active_documents, group_documents
from src.services.documents import DocumentService, matches_archive_rule
from src.services.draft_claim_generator import DraftClaimGenerator
from src.services.draft_claim_promoter import DraftClaimPromoter
from src.services.draft_claims import DraftClaimService
from src.services.match_scorer import MatchResult, MatchScorer
from src.services.payment_proof import ProofDocumentResolver
from src.services.payment_signal import PaymentSignal, PaymentSignalResolver, has_payment_signal
from src.services.scheduler import ReconciliationScheduler, RunGuard

__all__ = [
    # Payment signals and evidence groups
    "PaymentSignal",
    "PaymentSignalResolver",
    "has_payment_signal",
    "get_active_documents",
    "group_documents",
    "ProofDocumentResolver",
    # Matching
    "MatchScorer",
    "MatchResult",
    "AssignmentEngine",
    # Draft claims
    "DraftClaimService",
    "DraftClaimGenerator",
    "DraftClaimPromoter",
    # Claims
    "ClaimStateMachine",
    "ClaimLifecycleService",
    "get_claim_state_machine",
    # Documents
    "DocumentService",
    "matches_archive_rule",
    # Scheduling
    "RunGuard",
    "ReconciliationScheduler",
]
