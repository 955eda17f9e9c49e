"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.api.deps import get_container
from src.api.main import create_app
from src.core.config import ReconcilerSettings
from src.core.enums import (
    DocumentClassification,
    DocumentSourceType,
    IngestionMode,
    ScrapedClaimStatus,
)
from src.db import Storage, create_memory_storage
from src.gateways.ingestion import IngestionGateway, ScanResult
from src.gateways.submission import SubmissionGateway
from src.schemas.claim import Claim, ClaimStatusReport, ScrapedClaim, SubmissionReceipt
from src.schemas.document import DetectedAmount, MedicalDocument, PaymentOverride
from src.services.container import ServiceContainer


class FakeIngestionGateway(IngestionGateway):
    """Ingestion collaborator returning canned scan results."""

    def __init__(self, documents=None, calendar=None, error: Optional[Exception] = None):
        super().__init__(timeout_seconds=5)
        self.documents = documents or []
        self.calendar = calendar or []
        self.error = error
        self.modes: list[IngestionMode] = []

    async def _scan_documents(self, mode: IngestionMode) -> ScanResult:
        self.modes.append(mode)
        if self.error is not None:
            raise self.error
        return ScanResult(mode=mode, documents=self.documents)

    async def _scan_calendar(self) -> ScanResult:
        if self.error is not None:
            raise self.error
        return ScanResult(mode=IngestionMode.FULL, documents=self.calendar)


class FakeSubmissionGateway(SubmissionGateway):
    """Submission collaborator recording submitted claims."""

    def __init__(self, reports=None, error: Optional[Exception] = None):
        super().__init__(timeout_seconds=5)
        self.reports: list[ClaimStatusReport] = reports or []
        self.error = error
        self.submitted: list[Claim] = []

    async def _submit(self, claim: Claim) -> SubmissionReceipt:
        if self.error is not None:
            raise self.error
        self.submitted.append(claim)
        return SubmissionReceipt(
            submission_number=f"SUB-{len(self.submitted):04d}",
            insurer_claim_id=f"INS-{claim.id[:8]}",
            log=["Portal accepted claim"],
        )

    async def _fetch_status_reports(self) -> list[ClaimStatusReport]:
        if self.error is not None:
            raise self.error
        reports, self.reports = self.reports, []
        return reports


@pytest.fixture
def settings() -> ReconcilerSettings:
    """Settings isolated from the environment and any .env file."""
    return ReconcilerSettings(
        _env_file=None,
        ENVIRONMENT="testing",
        SCHEDULER_ENABLED=False,
        STORAGE_BACKEND="memory",
    )


@pytest.fixture
def storage() -> Storage:
    return create_memory_storage()


@pytest.fixture
def ingestion() -> FakeIngestionGateway:
    return FakeIngestionGateway()


@pytest.fixture
def submission() -> FakeSubmissionGateway:
    return FakeSubmissionGateway()


@pytest.fixture
def container(storage, settings, ingestion, submission) -> ServiceContainer:
    return ServiceContainer(storage, settings, ingestion, submission)


@pytest.fixture
def make_document():
    """Build a MedicalDocument; amounts are (value, currency, confidence) tuples."""

    def _make(
        amounts=(),
        on: Optional[date] = None,
        email_id: Optional[str] = None,
        source_type: DocumentSourceType = DocumentSourceType.ATTACHMENT,
        classification: DocumentClassification = DocumentClassification.MEDICAL_BILL,
        override: Optional[tuple] = None,
        **fields,
    ) -> MedicalDocument:
        detected = [
            DetectedAmount(
                value=Decimal(str(value)),
                currency=currency,
                raw_text=f"{currency} {value}",
                confidence=confidence,
            )
            for value, currency, confidence in amounts
        ]
        payment_override = None
        if override is not None:
            amount, currency, note = override
            payment_override = PaymentOverride(
                amount=Decimal(str(amount)), currency=currency, note=note
            )
        return MedicalDocument(
            source_type=source_type,
            email_id=email_id,
            classification=classification,
            detected_amounts=detected,
            payment_override=payment_override,
            date=datetime(on.year, on.month, on.day, 9, 0, tzinfo=timezone.utc) if on else None,
            **fields,
        )

    return _make


@pytest.fixture
def make_claim():
    """Build an insurer-reported ScrapedClaim."""

    def _make(
        amount="100.00",
        on: date = date(2026, 1, 10),
        currency: str = "EUR",
        **fields,
    ) -> ScrapedClaim:
        return ScrapedClaim(
            claim_number=fields.pop("claim_number", f"CLM-{uuid4().hex[:8].upper()}"),
            treatment_date=on,
            claim_amount=Decimal(str(amount)),
            claim_currency=currency,
            status=fields.pop("status", ScrapedClaimStatus.PENDING),
            **fields,
        )

    return _make


@pytest.fixture
def client(container):
    """API client bound to the in-memory container."""
    app = create_app(container)
    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
