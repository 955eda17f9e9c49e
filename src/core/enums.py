"""
Core Enumerations for Claim Reconciliation.

Closed value sets for documents, claims, assignments and draft claims,
plus the exhaustive lookup tables that map them to display values.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, TypeVar


# =============================================================================
# Evidence Document Enums
# =============================================================================


class DocumentSourceType(str, Enum):
    """Where an evidence document came from."""

    EMAIL = "email"
    ATTACHMENT = "attachment"
    CALENDAR = "calendar"


class DocumentClassification(str, Enum):
    """Content classification assigned during ingestion."""

    MEDICAL_BILL = "medical_bill"
    CORRESPONDENCE = "correspondence"
    RECEIPT = "receipt"
    PRESCRIPTION = "prescription"
    LAB_RESULT = "lab_result"
    INSURANCE_STATEMENT = "insurance_statement"
    APPOINTMENT = "appointment"
    UNKNOWN = "unknown"


class PaymentSignalSource(str, Enum):
    """Origin of a payment signal."""

    DETECTED = "detected"  # OCR-detected amount
    OVERRIDE = "override"  # Manual correction, always authoritative


class IngestionMode(str, Enum):
    """Document scan mode requested from the ingestion collaborator."""

    INCREMENTAL = "incremental"
    FULL = "full"


# =============================================================================
# Assignment Enums
# =============================================================================


class AssignmentStatus(str, Enum):
    """Document-claim assignment review status.

    State Machine Transitions:
    CANDIDATE -> CONFIRMED (requires illness_id)
    CANDIDATE -> REJECTED
    """

    CANDIDATE = "candidate"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class MatchReasonType(str, Enum):
    """Primary reason a document was linked to a claim."""

    EXACT_AMOUNT = "exact_amount"
    APPROXIMATE_AMOUNT = "approximate_amount"
    DATE_PROXIMITY = "date_proximity"
    PROVIDER_MATCH = "provider_match"
    MANUAL = "manual"


# =============================================================================
# Draft Claim Enums
# =============================================================================


class DraftClaimStatus(str, Enum):
    """Draft claim review status."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DraftClaimRange(str, Enum):
    """Lookback window for draft claim generation."""

    FOREVER = "forever"
    LAST_MONTH = "last_month"
    LAST_WEEK = "last_week"


class DraftClaimDateSource(str, Enum):
    """Where a draft claim's treatment date came from."""

    CALENDAR = "calendar"
    MANUAL = "manual"
    DOCUMENT = "document"


# =============================================================================
# Claim Enums
# =============================================================================


class ClaimType(str, Enum):
    """Claim categories offered by the insurer portal."""

    MEDICAL = "Medical"
    VISION = "Vision"
    DENTAL = "Dental"


class ClaimStatus(str, Enum):
    """Locally submitted claim lifecycle status.

    State Machine Transitions:
    DRAFT -> READY
    READY -> SUBMITTED | DRAFT
    SUBMITTED -> PROCESSING
    PROCESSING -> APPROVED | REJECTED
    APPROVED -> PAID
    """

    DRAFT = "draft"
    READY = "ready"
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class ScrapedClaimStatus(str, Enum):
    """Claim status as reported by the insurer portal."""

    PROCESSED = "processed"
    PENDING = "pending"
    REJECTED = "rejected"


class StorageBackend(str, Enum):
    """Repository backing store."""

    MEMORY = "memory"
    SQL = "sql"


# =============================================================================
# Exhaustive Lookup Tables
# =============================================================================

E = TypeVar("E", bound=Enum)
V = TypeVar("V")


def exhaustive(enum_cls: type[E], values: Mapping[E, V]) -> Mapping[E, V]:
    """
    Freeze a lookup table after checking it covers every enum member.

    Raises at import time when a member is added without a table entry.
    """
    missing = [member.value for member in enum_cls if member not in values]
    if missing:
        raise TypeError(f"{enum_cls.__name__} lookup is missing: {', '.join(missing)}")
    return MappingProxyType(dict(values))


CLAIM_STATUS_COLORS = exhaustive(
    ClaimStatus,
    {
        ClaimStatus.DRAFT: "gray",
        ClaimStatus.READY: "blue",
        ClaimStatus.SUBMITTED: "blue",
        ClaimStatus.PROCESSING: "yellow",
        ClaimStatus.APPROVED: "green",
        ClaimStatus.REJECTED: "red",
        ClaimStatus.PAID: "green",
    },
)

CLAIM_STATUS_DISPLAY_NAMES = exhaustive(
    ClaimStatus,
    {
        ClaimStatus.DRAFT: "Draft",
        ClaimStatus.READY: "Ready to Submit",
        ClaimStatus.SUBMITTED: "Submitted",
        ClaimStatus.PROCESSING: "Processing",
        ClaimStatus.APPROVED: "Approved",
        ClaimStatus.REJECTED: "Rejected",
        ClaimStatus.PAID: "Paid",
    },
)

SCRAPED_CLAIM_STATUS_COLORS = exhaustive(
    ScrapedClaimStatus,
    {
        ScrapedClaimStatus.PROCESSED: "green",
        ScrapedClaimStatus.PENDING: "yellow",
        ScrapedClaimStatus.REJECTED: "red",
    },
)

ASSIGNMENT_STATUS_COLORS = exhaustive(
    AssignmentStatus,
    {
        AssignmentStatus.CANDIDATE: "yellow",
        AssignmentStatus.CONFIRMED: "green",
        AssignmentStatus.REJECTED: "red",
    },
)

# Review queue ordering: lower sorts first
DRAFT_CLAIM_STATUS_PRIORITY = exhaustive(
    DraftClaimStatus,
    {
        DraftClaimStatus.PENDING: 0,
        DraftClaimStatus.ACCEPTED: 1,
        DraftClaimStatus.REJECTED: 2,
    },
)

PAYMENT_SIGNAL_RANK = exhaustive(
    PaymentSignalSource,
    {
        PaymentSignalSource.OVERRIDE: 2,
        PaymentSignalSource.DETECTED: 1,
    },
)

DRAFT_RANGE_DAYS = exhaustive(
    DraftClaimRange,
    {
        DraftClaimRange.FOREVER: None,
        DraftClaimRange.LAST_MONTH: 30,
        DraftClaimRange.LAST_WEEK: 7,
    },
)
