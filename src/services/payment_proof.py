"""
Payment Proof Resolution.

Finds supplementary documents (receipts, bank transfer confirmations)
that corroborate a draft claim's payment.

Scoring per candidate:
    +4  same currency and amount within epsilon
    +2  classified as a receipt
    +2  proof keyword in subject, snippet, OCR text, filename or sender
    +1  same originating message as the primary document
    +1  dated within the configured window of the primary document

When any candidate matches the amount, only amount matches are returned.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from src.core.config import get_settings
from src.core.enums import DocumentClassification
from src.schemas.common import dedupe_ids
from src.schemas.document import MedicalDocument
from src.schemas.draft_claim import DraftClaimPayment
from src.services.payment_signal import get_payment_signals

PROOF_KEYWORDS = (
    "proof of payment",
    "payment received",
    "payment confirmation",
    "paid",
    "bank transfer",
    "transfer",
    "sent",
    "transaction",
    "monzo",
)


class ProofResolver(Protocol):
    """Pluggable proof lookup."""

    def resolve(
        self,
        documents: Iterable[MedicalDocument],
        primary: MedicalDocument,
        payment: DraftClaimPayment,
    ) -> list[str]: ...


@dataclass
class _ScoredProof:
    document: MedicalDocument
    score: int
    amount_match: bool
    order: int


def _searchable_text(document: MedicalDocument) -> str:
    parts = (
        document.subject,
        document.body_snippet,
        document.ocr_text,
        document.filename,
        document.from_address,
    )
    return " ".join(part for part in parts if part).lower()


def has_proof_keyword(document: MedicalDocument) -> bool:
    text = _searchable_text(document)
    return any(keyword in text for keyword in PROOF_KEYWORDS)


class ProofDocumentResolver:
    """Keyword and amount heuristic for proof-of-payment documents."""

    def __init__(
        self,
        max_documents: Optional[int] = None,
        date_window_days: Optional[int] = None,
        amount_epsilon: Optional[float] = None,
    ):
        settings = get_settings()
        self.max_documents = (
            max_documents if max_documents is not None else settings.PROOF_MAX_DOCUMENTS
        )
        self.date_window_days = (
            date_window_days if date_window_days is not None else settings.PROOF_DATE_WINDOW_DAYS
        )
        self.amount_epsilon = Decimal(
            str(amount_epsilon if amount_epsilon is not None else settings.PROOF_AMOUNT_EPSILON)
        )

    def _matches_amount(self, document: MedicalDocument, payment: DraftClaimPayment) -> bool:
        if payment.amount <= 0:
            return False
        return any(
            signal.currency.upper() == payment.currency.upper()
            and abs(signal.amount - payment.amount) <= self.amount_epsilon
            for signal in get_payment_signals(document)
        )

    def _within_window(self, document: MedicalDocument, primary: MedicalDocument) -> bool:
        if document.date is None or primary.date is None:
            return False
        return abs((document.date - primary.date).days) <= self.date_window_days

    def _score(
        self,
        document: MedicalDocument,
        primary: MedicalDocument,
        payment: DraftClaimPayment,
        order: int,
    ) -> Optional[_ScoredProof]:
        is_receipt = document.classification == DocumentClassification.RECEIPT
        keyword = has_proof_keyword(document)
        if not is_receipt and not keyword:
            return None

        amount_match = self._matches_amount(document, payment)
        score = 0
        if amount_match:
            score += 4
        if is_receipt:
            score += 2
        if keyword:
            score += 2
        if primary.email_id and document.email_id == primary.email_id:
            score += 1
        if self._within_window(document, primary):
            score += 1
        return _ScoredProof(document=document, score=score, amount_match=amount_match, order=order)

    def resolve(
        self,
        documents: Iterable[MedicalDocument],
        primary: MedicalDocument,
        payment: DraftClaimPayment,
    ) -> list[str]:
        """
        Ids of proof documents for a primary document and its payment.

        Never includes the primary itself; archived and calendar documents
        are ignored.
        """
        scored = []
        for order, document in enumerate(documents):
            if document.id == primary.id or document.is_archived or document.is_calendar:
                continue
            candidate = self._score(document, primary, payment, order)
            if candidate is not None:
                scored.append(candidate)

        if any(candidate.amount_match for candidate in scored):
            scored = [candidate for candidate in scored if candidate.amount_match]

        scored.sort(key=lambda candidate: (-candidate.score, candidate.order))
        return dedupe_ids(candidate.document.id for candidate in scored)[: self.max_documents]
