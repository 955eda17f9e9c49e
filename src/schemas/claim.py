"""
Pydantic Schemas for Claims.

Two distinct claim representations are kept apart on purpose:

- ScrapedClaim: an insurer-side record imported from the portal, used only
  as a matching target.
- Claim: a locally prepared claim that moves through the submission
  lifecycle (draft -> ready -> submitted -> processing -> approved/rejected,
  approved -> paid).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from src.core.enums import ClaimStatus, ClaimType, ScrapedClaimStatus
from src.schemas.common import StoredModel, optional_utc, utcnow


# =============================================================================
# Scraped (insurer-side) Claims
# =============================================================================


class ScrapedLineItem(BaseModel):
    """Individual treatment within a scraped claim."""

    treatment_description: str = ""
    treatment_date: date
    claim_amount: Decimal = Field(..., ge=0)
    claim_currency: str = Field(..., min_length=3, max_length=3)
    amount_paid: Optional[Decimal] = None
    status: ScrapedClaimStatus = ScrapedClaimStatus.PENDING


class ScrapedClaim(StoredModel):
    """Claim record as reported by the insurer portal."""

    claim_number: str
    submission_number: Optional[str] = None
    member_name: Optional[str] = None
    provider_name: Optional[str] = None
    treatment_date: date
    claim_amount: Decimal = Field(..., ge=0)
    claim_currency: str = Field(..., min_length=3, max_length=3)
    amount_paid: Optional[Decimal] = None
    status: ScrapedClaimStatus = ScrapedClaimStatus.PENDING
    submission_date: Optional[date] = None
    payment_date: Optional[date] = None
    line_items: list[ScrapedLineItem] = Field(default_factory=list)
    scraped_at: datetime = Field(default_factory=utcnow)
    archived_at: Optional[datetime] = None

    @field_validator("scraped_at", "archived_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return optional_utc(v)

    @property
    def treatment_dates(self) -> list[date]:
        """Primary treatment date followed by line item dates."""
        return [self.treatment_date, *(item.treatment_date for item in self.line_items)]


class ScrapedClaimCreate(BaseModel):
    """Input for recording a scraped claim."""

    claim_number: str = Field(..., min_length=1)
    submission_number: Optional[str] = None
    member_name: Optional[str] = None
    provider_name: Optional[str] = None
    treatment_date: date
    claim_amount: Decimal = Field(..., ge=0)
    claim_currency: str = Field(..., min_length=3, max_length=3)
    status: ScrapedClaimStatus = ScrapedClaimStatus.PENDING
    submission_date: Optional[date] = None
    line_items: list[ScrapedLineItem] = Field(default_factory=list)


# =============================================================================
# Locally Submitted Claims
# =============================================================================


class ClaimStatusChange(BaseModel):
    """Audit entry for one lifecycle transition."""

    from_status: ClaimStatus
    to_status: ClaimStatus
    changed_at: datetime = Field(default_factory=utcnow)
    changed_by: Optional[str] = None
    reason: Optional[str] = None


class Claim(StoredModel):
    """Claim prepared locally and submitted through the portal."""

    draft_claim_id: Optional[str] = None
    patient_id: str
    illness_id: Optional[str] = None
    document_ids: list[str] = Field(default_factory=list)
    proof_document_ids: list[str] = Field(default_factory=list)
    claim_type: ClaimType = ClaimType.MEDICAL
    status: ClaimStatus = ClaimStatus.DRAFT

    insurer_claim_id: Optional[str] = None
    submission_number: Optional[str] = None

    treatment_date: Optional[date] = None
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    country: Optional[str] = None

    submitted_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    approved_amount: Optional[Decimal] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None

    status_history: list[ClaimStatusChange] = Field(default_factory=list)
    submission_log: list[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    archived_at: Optional[datetime] = None


class ClaimCreate(BaseModel):
    """Input for preparing a new local claim."""

    patient_id: str = Field(..., min_length=1)
    draft_claim_id: Optional[str] = None
    illness_id: Optional[str] = None
    document_ids: list[str] = Field(default_factory=list)
    proof_document_ids: list[str] = Field(default_factory=list)
    claim_type: ClaimType = ClaimType.MEDICAL
    treatment_date: Optional[date] = None
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    country: Optional[str] = None
    notes: Optional[str] = None


class ClaimUpdate(BaseModel):
    """Editable fields of a claim that has not been submitted."""

    illness_id: Optional[str] = None
    document_ids: Optional[list[str]] = None
    proof_document_ids: Optional[list[str]] = None
    claim_type: Optional[ClaimType] = None
    treatment_date: Optional[date] = None
    total_amount: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    country: Optional[str] = None
    notes: Optional[str] = None


class ClaimTransitionRequest(BaseModel):
    """Request to move a claim to another lifecycle status."""

    status: ClaimStatus
    reason: Optional[str] = Field(None, max_length=1000)
    changed_by: Optional[str] = None


class ClaimFromDraftInput(BaseModel):
    """Input for turning an accepted draft claim into a local claim."""

    patient_id: str = Field(..., min_length=1)
    claim_type: ClaimType = ClaimType.MEDICAL
    country: Optional[str] = None


class ClaimStatusReport(BaseModel):
    """Status change reported back by the submission collaborator."""

    claim_id: str
    status: ClaimStatus
    insurer_claim_id: Optional[str] = None
    submission_number: Optional[str] = None
    approved_amount: Optional[Decimal] = None
    rejection_reason: Optional[str] = None
    reported_at: datetime = Field(default_factory=utcnow)


class SubmissionReceipt(BaseModel):
    """Result of handing a claim to the submission collaborator."""

    submission_number: str
    insurer_claim_id: Optional[str] = None
    log: list[str] = Field(default_factory=list)
