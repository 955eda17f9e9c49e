"""
Unit tests for proof-of-payment resolution.
"""

from datetime import date
from decimal import Decimal

import pytest

from src.core.enums import DocumentClassification, DocumentSourceType
from src.schemas.common import utcnow
from src.schemas.draft_claim import DraftClaimPayment
from src.services.payment_proof import ProofDocumentResolver, has_proof_keyword

RECEIPT = DocumentClassification.RECEIPT
CORRESPONDENCE = DocumentClassification.CORRESPONDENCE


@pytest.fixture
def resolver():
    return ProofDocumentResolver(max_documents=3, date_window_days=30, amount_epsilon=0.01)


@pytest.fixture
def payment():
    return DraftClaimPayment(amount=Decimal("80"), currency="EUR")


@pytest.fixture
def primary(make_document):
    return make_document(amounts=[(80, "EUR", 90)], email_id="msg-1", on=date(2026, 1, 10))


@pytest.mark.unit
class TestProofDocumentResolver:
    """Tests for ProofDocumentResolver.resolve."""

    def test_amount_matches_take_precedence(self, resolver, primary, payment, make_document):
        matching_receipt = make_document(
            amounts=[(80, "EUR", 70)], classification=RECEIPT, on=date(2026, 1, 12)
        )
        keyword_only = make_document(
            classification=CORRESPONDENCE, subject="Bank transfer confirmation"
        )

        proofs = resolver.resolve([primary, matching_receipt, keyword_only], primary, payment)

        assert proofs == [matching_receipt.id]

    def test_keyword_candidates_when_nothing_matches_amount(
        self, resolver, primary, payment, make_document
    ):
        same_email = make_document(
            classification=CORRESPONDENCE, subject="Payment received", email_id="msg-1"
        )
        receipt = make_document(classification=RECEIPT, on=date(2026, 3, 30))
        unrelated = make_document(classification=CORRESPONDENCE, subject="Lab results")

        proofs = resolver.resolve([primary, receipt, unrelated, same_email], primary, payment)

        # receipt scores 2, same-email keyword document scores 3
        assert proofs == [same_email.id, receipt.id]

    def test_never_returns_primary_calendar_or_archived(
        self, resolver, primary, payment, make_document
    ):
        calendar = make_document(
            source_type=DocumentSourceType.CALENDAR,
            classification=RECEIPT,
            on=date(2026, 1, 10),
        )
        archived = make_document(classification=RECEIPT, archived_at=utcnow())
        primary_as_receipt = primary.model_copy(update={"classification": RECEIPT})

        assert resolver.resolve([primary_as_receipt, calendar, archived], primary, payment) == []

    def test_results_are_capped(self, primary, payment, make_document):
        receipts = [
            make_document(amounts=[(80, "EUR", 50)], classification=RECEIPT) for _ in range(5)
        ]
        resolver = ProofDocumentResolver(max_documents=2, date_window_days=30, amount_epsilon=0.01)

        proofs = resolver.resolve(receipts, primary, payment)

        assert proofs == [receipts[0].id, receipts[1].id]

    def test_zero_payment_never_matches_by_amount(self, resolver, primary, make_document):
        zero = DraftClaimPayment(amount=Decimal("0"), currency="EUR")
        zero_receipt = make_document(amounts=[(0, "EUR", 50)], classification=RECEIPT)
        keyword = make_document(classification=CORRESPONDENCE, subject="Transaction details")

        proofs = resolver.resolve([zero_receipt, keyword], primary, zero)

        assert set(proofs) == {zero_receipt.id, keyword.id}

    def test_currency_must_match(self, resolver, primary, payment, make_document):
        usd_receipt = make_document(amounts=[(80, "USD", 90)], classification=RECEIPT)
        eur_receipt = make_document(amounts=[(80.005, "EUR", 90)], classification=RECEIPT)

        assert resolver.resolve([usd_receipt, eur_receipt], primary, payment) == [eur_receipt.id]


@pytest.mark.unit
@pytest.mark.parametrize(
    "field, value, expected",
    [
        ("subject", "Proof of payment attached", True),
        ("filename", "monzo-statement.pdf", True),
        ("from_address", "noreply@bank.example", False),
        ("body_snippet", "Your appointment is confirmed", False),
    ],
)
def test_has_proof_keyword(make_document, field, value, expected):
    assert has_proof_keyword(make_document(**{field: value})) is expected
