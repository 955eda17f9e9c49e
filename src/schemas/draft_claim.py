"""
Pydantic Schemas for Draft Claims.

A draft claim is a locally generated, pre-submission claim candidate built
from evidence documents rather than from an insurer record.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.enums import (
    DraftClaimDateSource,
    DraftClaimRange,
    DraftClaimStatus,
    PaymentSignalSource,
)
from src.schemas.common import StoredModel, dedupe_ids, optional_utc, utcnow


class DraftClaimPayment(BaseModel):
    """Payment snapshot taken from the winning payment signal."""

    amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    source: Optional[PaymentSignalSource] = Field(
        None, description="None for the empty placeholder payment"
    )
    confidence: Optional[float] = Field(None, ge=0, le=100)
    raw_text: Optional[str] = None
    context: Optional[str] = None
    override_note: Optional[str] = None
    override_updated_at: Optional[datetime] = None


class DraftClaim(StoredModel):
    """Locally generated claim candidate awaiting review."""

    status: DraftClaimStatus = DraftClaimStatus.PENDING
    primary_document_id: str
    document_ids: list[str] = Field(default_factory=list)
    payment: DraftClaimPayment
    payment_proof_document_ids: list[str] = Field(default_factory=list)

    illness_id: Optional[str] = None
    doctor_notes: Optional[str] = None
    treatment_date: Optional[date] = None
    treatment_date_source: Optional[DraftClaimDateSource] = None
    calendar_document_ids: list[str] = Field(default_factory=list)

    generated_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None

    @field_validator("document_ids", "payment_proof_document_ids", "calendar_document_ids")
    @classmethod
    def dedupe(cls, v: list[str]) -> list[str]:
        return dedupe_ids(v)

    @field_validator("generated_at", "updated_at", "accepted_at", "rejected_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return optional_utc(v)

    @model_validator(mode="after")
    def include_linked_documents(self) -> "DraftClaim":
        # document_ids always covers the primary, proof and calendar documents
        expected = dedupe_ids(
            [
                *self.document_ids,
                self.primary_document_id,
                *self.payment_proof_document_ids,
                *self.calendar_document_ids,
            ]
        )
        if expected != self.document_ids:
            object.__setattr__(self, "document_ids", expected)
        return self


class DraftClaimCreate(BaseModel):
    """Input for creating a draft claim."""

    primary_document_id: str = Field(..., min_length=1)
    document_ids: list[str] = Field(default_factory=list)
    payment: DraftClaimPayment
    payment_proof_document_ids: list[str] = Field(default_factory=list)
    status: DraftClaimStatus = DraftClaimStatus.PENDING
    illness_id: Optional[str] = None
    treatment_date: Optional[date] = None
    treatment_date_source: Optional[DraftClaimDateSource] = None


class DraftClaimUpdate(BaseModel):
    """Reviewer-editable fields of a pending draft claim."""

    illness_id: Optional[str] = None
    doctor_notes: Optional[str] = Field(None, max_length=5000)
    treatment_date: Optional[date] = None


class DraftClaimAccept(BaseModel):
    """Input for accepting a draft claim."""

    illness_id: Optional[str] = None
    treatment_date: Optional[date] = None


class TreatmentDateInput(BaseModel):
    """Manually entered treatment date."""

    treatment_date: date


class CalendarEvidenceInput(BaseModel):
    calendar_document_id: str = Field(..., min_length=1)


class GenerateDraftClaimsRequest(BaseModel):
    """Input for a draft generation run."""

    range: DraftClaimRange = DraftClaimRange.FOREVER
    as_of: Optional[datetime] = None


class PromoteDraftResult(BaseModel):
    """Outcome of promoting a document into a draft claim."""

    draft: DraftClaim
    created: bool
    expanded: bool
