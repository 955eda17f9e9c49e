"""
Pydantic Schemas for the Claim Reconciler.

This module exports the stored entities and their request schemas.
"""

from src.schemas.archive_rule import ArchiveRule, ArchiveRuleCreate, ArchiveRuleUpdate
from src.schemas.assignment import (
    AssignmentConfirm,
    AssignmentCreate,
    AssignmentReject,
    AssignmentStats,
    DocumentClaimAssignment,
    MatchStats,
)
from src.schemas.claim import (
    Claim,
    ClaimCreate,
    ClaimFromDraftInput,
    ClaimStatusReport,
    ClaimTransitionRequest,
    ClaimUpdate,
    ScrapedClaim,
    ScrapedClaimCreate,
    SubmissionReceipt,
)
from src.schemas.common import StoredModel
from src.schemas.document import (
    DetectedAmount,
    MedicalDocument,
    MedicalDocumentCreate,
    MedicalDocumentUpdate,
    PaymentOverride,
    PaymentOverrideInput,
)
from src.schemas.draft_claim import (
    DraftClaim,
    DraftClaimAccept,
    DraftClaimCreate,
    DraftClaimPayment,
    DraftClaimUpdate,
    PromoteDraftResult,
)

__all__ = [
    # Common
    "StoredModel",
    # Documents
    "DetectedAmount",
    "MedicalDocument",
    "MedicalDocumentCreate",
    "MedicalDocumentUpdate",
    "PaymentOverride",
    "PaymentOverrideInput",
    # Archive rules
    "ArchiveRule",
    "ArchiveRuleCreate",
    "ArchiveRuleUpdate",
    # Claims
    "ScrapedClaim",
    "ScrapedClaimCreate",
    "Claim",
    "ClaimCreate",
    "ClaimUpdate",
    "ClaimFromDraftInput",
    "ClaimTransitionRequest",
    "ClaimStatusReport",
    "SubmissionReceipt",
    # Assignments
    "DocumentClaimAssignment",
    "AssignmentCreate",
    "AssignmentConfirm",
    "AssignmentReject",
    "AssignmentStats",
    "MatchStats",
    # Draft claims
    "DraftClaim",
    "DraftClaimCreate",
    "DraftClaimUpdate",
    "DraftClaimAccept",
    "DraftClaimPayment",
    "PromoteDraftResult",
]
