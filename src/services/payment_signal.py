"""
Payment Signal Resolution.

Picks the single authoritative payment for a document or a document group.

Ranking:
    1. Source: override (manual correction) strictly beats detected (OCR)
    2. Confidence: higher wins
    3. Amount: higher wins
    4. Otherwise the first-seen signal is kept
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from src.core.config import get_settings
from src.core.enums import PAYMENT_SIGNAL_RANK, PaymentSignalSource
from src.schemas.document import MedicalDocument
from src.schemas.draft_claim import DraftClaimPayment


@dataclass(frozen=True)
class PaymentSignal:
    """One candidate payment taken from a document."""

    document_id: str
    amount: Decimal
    currency: str
    source: PaymentSignalSource
    confidence: float
    raw_text: Optional[str] = None
    context: Optional[str] = None
    override_note: Optional[str] = None
    override_updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ResolvedPayment:
    """Group payment plus the document that supplied it (None for the placeholder)."""

    payment: DraftClaimPayment
    primary_document_id: Optional[str]
    signal: Optional[PaymentSignal] = None

    @property
    def is_empty(self) -> bool:
        return self.signal is None


def get_payment_signals(document: MedicalDocument) -> list[PaymentSignal]:
    """
    List the payment signals a document offers.

    A document with an override offers only the override; its detected
    amounts are ignored. Negative detected amounts (credits, refunds) are
    never payment signals.
    """
    override = document.payment_override
    if override is not None:
        return [
            PaymentSignal(
                document_id=document.id,
                amount=override.amount,
                currency=override.currency,
                source=PaymentSignalSource.OVERRIDE,
                confidence=100,
                raw_text=f"Override: {override.amount} {override.currency}",
                context=override.note,
                override_note=override.note,
                override_updated_at=override.updated_at,
            )
        ]

    return [
        PaymentSignal(
            document_id=document.id,
            amount=detected.value,
            currency=detected.currency,
            source=PaymentSignalSource.DETECTED,
            confidence=detected.confidence,
            raw_text=detected.raw_text,
            context=detected.context,
        )
        for detected in document.detected_amounts
        if detected.value >= 0
    ]


def has_payment_signal(document: MedicalDocument) -> bool:
    return document.payment_override is not None or any(
        detected.value >= 0 for detected in document.detected_amounts
    )


def compare_payment_signals(a: PaymentSignal, b: PaymentSignal) -> int:
    """Positive when ``a`` outranks ``b``, negative when ``b`` wins, 0 on a full tie."""
    rank_diff = PAYMENT_SIGNAL_RANK[a.source] - PAYMENT_SIGNAL_RANK[b.source]
    if rank_diff:
        return rank_diff
    if a.confidence != b.confidence:
        return 1 if a.confidence > b.confidence else -1
    if a.amount != b.amount:
        return 1 if a.amount > b.amount else -1
    return 0


def pick_best_signal(signals: Iterable[PaymentSignal]) -> Optional[PaymentSignal]:
    """Running best over signals; ties keep the first seen."""
    best: Optional[PaymentSignal] = None
    for signal in signals:
        if best is None or compare_payment_signals(signal, best) > 0:
            best = signal
    return best


def get_primary_payment_signal(document: MedicalDocument) -> Optional[PaymentSignal]:
    return pick_best_signal(get_payment_signals(document))


def to_draft_claim_payment(signal: PaymentSignal) -> DraftClaimPayment:
    return DraftClaimPayment(
        amount=signal.amount,
        currency=signal.currency,
        source=signal.source,
        confidence=signal.confidence,
        raw_text=signal.raw_text,
        context=signal.context,
        override_note=signal.override_note,
        override_updated_at=signal.override_updated_at,
    )


class PaymentSignalResolver:
    """Resolves group payments, falling back to a configured placeholder."""

    def __init__(
        self,
        default_currency: Optional[str] = None,
        empty_context: Optional[str] = None,
    ):
        settings = get_settings()
        self.default_currency = default_currency or settings.DEFAULT_CURRENCY
        self.empty_context = empty_context or settings.EMPTY_PAYMENT_CONTEXT

    def create_empty_payment(self) -> DraftClaimPayment:
        """Zero-amount payment used when no document offers a signal."""
        return DraftClaimPayment(
            amount=Decimal("0"),
            currency=self.default_currency,
            context=self.empty_context,
        )

    def resolve_document(self, document: MedicalDocument) -> DraftClaimPayment:
        signal = get_primary_payment_signal(document)
        return to_draft_claim_payment(signal) if signal else self.create_empty_payment()

    def resolve_group(self, documents: Iterable[MedicalDocument]) -> ResolvedPayment:
        """
        Best payment across a document group.

        Documents are visited in the order given, so on a full tie the
        first document keeps the win and re-runs stay deterministic.
        """
        best = pick_best_signal(
            signal for document in documents for signal in get_payment_signals(document)
        )
        if best is None:
            return ResolvedPayment(payment=self.create_empty_payment(), primary_document_id=None)
        return ResolvedPayment(
            payment=to_draft_claim_payment(best),
            primary_document_id=best.document_id,
            signal=best,
        )
