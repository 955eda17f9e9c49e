"""
Unit tests for payment signal resolution.
"""

from decimal import Decimal

import pytest

from src.core.enums import PaymentSignalSource
from src.services.payment_signal import (
    PaymentSignal,
    PaymentSignalResolver,
    compare_payment_signals,
    get_payment_signals,
    get_primary_payment_signal,
    has_payment_signal,
    pick_best_signal,
)


def _signal(amount, confidence, source=PaymentSignalSource.DETECTED, document_id="doc"):
    return PaymentSignal(
        document_id=document_id,
        amount=Decimal(str(amount)),
        currency="EUR",
        source=source,
        confidence=confidence,
    )


@pytest.fixture
def resolver():
    return PaymentSignalResolver(
        default_currency="EUR",
        empty_context="Manual promotion - no payment signal detected",
    )


@pytest.mark.unit
class TestPaymentSignals:
    """Tests for per-document signals."""

    def test_detected_amounts_become_signals(self, make_document):
        document = make_document(amounts=[(80, "EUR", 90), (12.5, "EUR", 40)])
        signals = get_payment_signals(document)
        assert [s.amount for s in signals] == [Decimal("80"), Decimal("12.5")]
        assert all(s.source == PaymentSignalSource.DETECTED for s in signals)

    def test_override_hides_detected_amounts(self, make_document):
        document = make_document(amounts=[(45, "EUR", 95)], override=(50, "EUR", "corrected"))
        signals = get_payment_signals(document)
        assert len(signals) == 1
        signal = signals[0]
        assert signal.source == PaymentSignalSource.OVERRIDE
        assert signal.confidence == 100
        assert signal.raw_text == "Override: 50 EUR"
        assert signal.context == "corrected"
        assert signal.override_note == "corrected"

    def test_has_payment_signal(self, make_document):
        assert has_payment_signal(make_document(amounts=[(10, "EUR", 50)]))
        assert has_payment_signal(make_document(override=(0, "EUR", None)))
        assert not has_payment_signal(make_document())

    def test_negative_amounts_are_not_signals(self, make_document):
        refund = make_document(amounts=[(-20, "EUR", 90)])
        assert get_payment_signals(refund) == []
        assert not has_payment_signal(refund)

        mixed = make_document(amounts=[(-20, "EUR", 95), (60, "EUR", 70)])
        assert [signal.amount for signal in get_payment_signals(mixed)] == [Decimal("60")]

    def test_primary_signal_prefers_confidence(self, make_document):
        document = make_document(amounts=[(200, "EUR", 60), (80, "EUR", 90)])
        assert get_primary_payment_signal(document).amount == Decimal("80")

    def test_primary_signal_none_without_amounts(self, make_document):
        assert get_primary_payment_signal(make_document()) is None


@pytest.mark.unit
class TestSignalOrdering:
    """Override > confidence > amount > first seen."""

    def test_override_beats_higher_confidence(self):
        override = _signal(10, 50, PaymentSignalSource.OVERRIDE)
        detected = _signal(999, 99)
        assert compare_payment_signals(override, detected) > 0
        assert compare_payment_signals(detected, override) < 0

    def test_confidence_then_amount(self):
        assert compare_payment_signals(_signal(10, 90), _signal(50, 80)) > 0
        assert compare_payment_signals(_signal(50, 80), _signal(10, 80)) > 0

    def test_full_tie_keeps_first_seen(self):
        first = _signal(20, 70, document_id="first")
        second = _signal(20, 70, document_id="second")
        assert compare_payment_signals(first, second) == 0
        assert pick_best_signal([first, second]).document_id == "first"

    def test_pick_best_of_nothing(self):
        assert pick_best_signal([]) is None


@pytest.mark.unit
class TestPaymentSignalResolver:
    """Tests for group resolution."""

    def test_override_wins_within_email(self, resolver, make_document):
        detected = make_document(amounts=[(45, "EUR", 95)], email_id="msg-1")
        corrected = make_document(
            amounts=[(45, "EUR", 95)], override=(50, "EUR", "corrected"), email_id="msg-1"
        )

        resolved = resolver.resolve_group([detected, corrected])

        assert resolved.payment.amount == Decimal("50")
        assert resolved.payment.source == PaymentSignalSource.OVERRIDE
        assert resolved.payment.confidence == 100
        assert resolved.payment.override_note == "corrected"
        assert resolved.primary_document_id == corrected.id
        assert not resolved.is_empty

    def test_tie_across_documents_keeps_first_document(self, resolver, make_document):
        first = make_document(amounts=[(30, "EUR", 80)])
        second = make_document(amounts=[(30, "EUR", 80)])
        assert resolver.resolve_group([first, second]).primary_document_id == first.id
        assert resolver.resolve_group([second, first]).primary_document_id == second.id

    def test_empty_group_gets_placeholder(self, resolver, make_document):
        resolved = resolver.resolve_group([make_document()])
        assert resolved.is_empty
        assert resolved.primary_document_id is None
        assert resolved.payment.amount == Decimal("0")
        assert resolved.payment.currency == "EUR"
        assert resolved.payment.context == "Manual promotion - no payment signal detected"
        assert resolved.payment.source is None

    def test_resolve_document(self, resolver, make_document):
        payment = resolver.resolve_document(make_document(amounts=[(120, "EUR", 85)]))
        assert payment.amount == Decimal("120")
        assert payment.raw_text == "EUR 120"
