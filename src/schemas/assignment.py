"""
Pydantic Schemas for Document-Claim Assignments.

An assignment is a scored link between one evidence document and one
insurer claim. Status moves candidate -> confirmed (illness required) or
candidate -> rejected; both outcomes are final for the assignment engine.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from src.core.enums import AssignmentStatus, MatchReasonType
from src.schemas.common import StoredModel, utcnow


class AmountMatchDetails(BaseModel):
    """Amount comparison recorded for audit, even when it did not match."""

    document_amount: Decimal
    document_currency: str
    claim_amount: Decimal
    claim_currency: str
    difference: Optional[Decimal] = Field(None, description="None when currencies differ")
    difference_percent: Optional[float] = Field(None, description="None when currencies differ")


class DateMatchDetails(BaseModel):
    """Date comparison against the nearest claim treatment date."""

    document_date: date
    claim_date: date
    days_difference: int


class DocumentClaimAssignment(StoredModel):
    """Scored link between a medical document and a scraped claim."""

    document_id: str
    claim_id: str
    illness_id: Optional[str] = None
    match_score: float = Field(..., ge=0, le=100)
    match_reason_type: MatchReasonType
    match_reason: str = ""
    status: AssignmentStatus = AssignmentStatus.CANDIDATE
    amount_match_details: Optional[AmountMatchDetails] = None
    date_match_details: Optional[DateMatchDetails] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[str] = None
    review_notes: Optional[str] = None

    @model_validator(mode="after")
    def check_confirmed_has_illness(self) -> "DocumentClaimAssignment":
        if self.status == AssignmentStatus.CONFIRMED and not self.illness_id:
            raise ValueError("confirmed assignments require an illness_id")
        return self


class AssignmentCreate(BaseModel):
    """Input for materializing a candidate assignment."""

    document_id: str = Field(..., min_length=1)
    claim_id: str = Field(..., min_length=1)
    match_score: float = Field(..., ge=0, le=100)
    match_reason_type: MatchReasonType
    match_reason: str = ""
    amount_match_details: Optional[AmountMatchDetails] = None
    date_match_details: Optional[DateMatchDetails] = None


class AssignmentConfirm(BaseModel):
    """Review input for confirming a candidate."""

    illness_id: Optional[str] = Field(None, description="Required; validated by the engine")
    confirmed_by: Optional[str] = None
    review_notes: Optional[str] = Field(None, max_length=2000)


class AssignmentReject(BaseModel):
    """Review input for rejecting a candidate."""

    review_notes: Optional[str] = Field(None, max_length=2000)


class ManualAssignmentCreate(BaseModel):
    """Input for linking a document to a claim by hand."""

    document_id: str = Field(..., min_length=1)
    claim_id: str = Field(..., min_length=1)
    review_notes: Optional[str] = Field(None, max_length=2000)


class MatchDocumentsRequest(BaseModel):
    """Documents to re-run matching for."""

    document_ids: list[str] = Field(..., min_length=1)


class AssignmentStats(BaseModel):
    """Aggregate assignment counts."""

    total: int = 0
    candidates: int = 0
    confirmed: int = 0
    rejected: int = 0
    avg_match_score: float = 0.0


class MatchStats(BaseModel):
    """Summary of a full matching run."""

    total_documents: int = 0
    matchable_documents: int = 0
    total_claims: int = 0
    candidates_created: int = 0
    avg_match_score: float = 0.0
    matches_by_score: dict[str, int] = Field(default_factory=dict)
