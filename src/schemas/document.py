"""
Pydantic Schemas for Evidence Documents.

MedicalDocument records are produced by the ingestion collaborator
(OCR'd emails, attachments and calendar entries). The reconciliation core
reads them and only mutates override, classification and archive state.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from src.core.enums import DocumentClassification, DocumentSourceType
from src.schemas.common import StoredModel, optional_utc, utcnow


# =============================================================================
# Value Objects
# =============================================================================


class DetectedAmount(BaseModel):
    """Amount detected in OCR'd document text."""

    value: Decimal = Field(..., description="Parsed numeric value")
    currency: str = Field(..., min_length=3, max_length=3, description="ISO currency code")
    raw_text: str = Field(default="", description="Raw text that was parsed, e.g. 'EUR 80.00'")
    context: Optional[str] = Field(None, description="Surrounding text")
    confidence: float = Field(default=0, ge=0, le=100, description="Detection confidence 0-100")


class PaymentOverride(BaseModel):
    """Manual payment correction; always wins over detected amounts."""

    amount: Decimal = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    note: Optional[str] = Field(None, max_length=1000)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("updated_at")
    @classmethod
    def normalize_updated_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return optional_utc(v)


# =============================================================================
# Entity
# =============================================================================


class MedicalDocument(StoredModel):
    """One piece of evidence that may support a claim."""

    source_type: DocumentSourceType
    email_id: Optional[str] = Field(None, description="Originating message identifier")
    account: Optional[str] = None
    attachment_path: Optional[str] = None
    filename: Optional[str] = None
    mime_type: Optional[str] = None

    ocr_text: Optional[str] = None
    detected_amounts: list[DetectedAmount] = Field(default_factory=list)
    classification: DocumentClassification = DocumentClassification.UNKNOWN
    medical_keywords: list[str] = Field(default_factory=list)
    provider_name: Optional[str] = None

    from_address: Optional[str] = None
    subject: Optional[str] = None
    body_snippet: Optional[str] = None
    date: Optional[datetime] = None

    calendar_event_id: Optional[str] = None
    calendar_summary: Optional[str] = None
    calendar_location: Optional[str] = None
    calendar_start: Optional[datetime] = None

    payment_override: Optional[PaymentOverride] = None

    archived_at: Optional[datetime] = None
    archived_by_rule_id: Optional[str] = None
    archived_reason: Optional[str] = None

    processed_at: datetime = Field(default_factory=utcnow)

    @field_validator("date", "calendar_start", "archived_at", "processed_at")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return optional_utc(v)

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    @property
    def is_calendar(self) -> bool:
        return self.source_type == DocumentSourceType.CALENDAR

    @property
    def effective_date(self) -> Optional[datetime]:
        """Document date, falling back to the calendar start."""
        return self.date or self.calendar_start


# =============================================================================
# Inputs
# =============================================================================


class MedicalDocumentCreate(BaseModel):
    """Input for recording a newly ingested document."""

    source_type: DocumentSourceType
    email_id: Optional[str] = None
    account: Optional[str] = None
    attachment_path: Optional[str] = None
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    ocr_text: Optional[str] = None
    detected_amounts: list[DetectedAmount] = Field(default_factory=list)
    classification: DocumentClassification = DocumentClassification.UNKNOWN
    medical_keywords: list[str] = Field(default_factory=list)
    provider_name: Optional[str] = None
    from_address: Optional[str] = None
    subject: Optional[str] = None
    body_snippet: Optional[str] = None
    date: Optional[datetime] = None
    calendar_event_id: Optional[str] = None
    calendar_summary: Optional[str] = None
    calendar_location: Optional[str] = None
    calendar_start: Optional[datetime] = None


class MedicalDocumentUpdate(BaseModel):
    """Fields the reconciliation core is allowed to change on a document."""

    classification: Optional[DocumentClassification] = None
    provider_name: Optional[str] = None
    medical_keywords: Optional[list[str]] = None


class PaymentOverrideInput(BaseModel):
    """Input for setting a manual payment override."""

    amount: Decimal = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    note: Optional[str] = Field(None, max_length=1000)


class ArchiveDocumentInput(BaseModel):
    """Input for archiving a document by hand."""

    reason: Optional[str] = Field(None, max_length=500)
