"""
Document-Claim Match Scoring.

Computes a 0-100 confidence that an evidence document belongs to an
insurer-reported claim. Scoring is a pure function of the document, the
claim and the thresholds, so re-scoring an unchanged pair always yields
the same result.

Algorithm:
    1. Amount: difference percent against the claim amount
       <= exact tolerance       -> exact score, exact_amount
       <= approximate tolerance -> approximate score, approximate_amount
    2. Date: whole days to the nearest claim treatment date
       <= proximity days        -> + proximity bonus
       >  penalty threshold     -> - mismatch penalty
       >  max mismatch days     -> disqualified
       no document date         -> - half the mismatch penalty
    3. Provider match           -> + provider bonus
    4. Clamp to [0, 100]

Calendar entries carry no amount. Their date proximity is worth up to the
exact score, decaying linearly across the proximity window, and a provider
or summary/location hit in the claim's line items is worth twice the bonus.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional

from src.core.config import MatchThresholds, get_settings
from src.core.enums import MatchReasonType
from src.schemas.assignment import AmountMatchDetails, DateMatchDetails
from src.schemas.claim import ScrapedClaim
from src.schemas.common import as_date
from src.schemas.document import MedicalDocument
from src.services.payment_signal import PaymentSignal, get_payment_signals
from src.utils.logging import get_logger

logger = get_logger(__name__)

ProviderComparator = Callable[[MedicalDocument, ScrapedClaim], bool]


def default_provider_comparator(document: MedicalDocument, claim: ScrapedClaim) -> bool:
    """
    Case-insensitive provider name comparison.

    Falls back to a document medical keyword appearing in the claim's
    line-item descriptions when either side lacks a provider name.
    """
    if document.provider_name and claim.provider_name:
        return document.provider_name.strip().lower() == claim.provider_name.strip().lower()

    descriptions = " ".join(item.treatment_description for item in claim.line_items).lower()
    if not descriptions:
        return False
    return any(
        keyword.strip() and keyword.strip().lower() in descriptions
        for keyword in document.medical_keywords
    )


@dataclass
class MatchResult:
    """Outcome of scoring one document against one claim."""

    score: float
    reason_type: Optional[MatchReasonType]
    reason: str
    is_candidate: bool
    disqualified: bool = False
    amount_match_details: Optional[AmountMatchDetails] = None
    date_match_details: Optional[DateMatchDetails] = None
    reasons: list[str] = field(default_factory=list)


class MatchScorer:
    """Scores document/claim pairs against configured thresholds."""

    def __init__(
        self,
        thresholds: Optional[MatchThresholds] = None,
        provider_comparator: Optional[ProviderComparator] = None,
    ):
        self.thresholds = thresholds or get_settings().match_thresholds
        self.provider_comparator = provider_comparator or default_provider_comparator

    def _closest_signal(
        self, signals: list[PaymentSignal], claim: ScrapedClaim
    ) -> tuple[Optional[PaymentSignal], bool]:
        """Signal nearest the claim amount; second value is False when no currency matches."""
        same_currency = [
            signal for signal in signals if signal.currency.upper() == claim.claim_currency.upper()
        ]
        if not same_currency:
            return (signals[0] if signals else None), False
        closest = min(same_currency, key=lambda signal: abs(signal.amount - claim.claim_amount))
        return closest, True

    def _score_amount(
        self, document: MedicalDocument, claim: ScrapedClaim
    ) -> tuple[float, Optional[MatchReasonType], Optional[str], Optional[AmountMatchDetails]]:
        if document.is_calendar:
            return 0, None, None, None

        signal, currency_match = self._closest_signal(get_payment_signals(document), claim)
        if signal is None:
            return 0, None, None, None

        if not currency_match:
            details = AmountMatchDetails(
                document_amount=signal.amount,
                document_currency=signal.currency,
                claim_amount=claim.claim_amount,
                claim_currency=claim.claim_currency,
            )
            return 0, None, None, details

        difference = abs(signal.amount - claim.claim_amount)
        if claim.claim_amount > 0:
            difference_percent = difference / claim.claim_amount
        else:
            difference_percent = Decimal("1")

        details = AmountMatchDetails(
            document_amount=signal.amount,
            document_currency=signal.currency,
            claim_amount=claim.claim_amount,
            claim_currency=claim.claim_currency,
            difference=difference,
            difference_percent=float(difference_percent),
        )
        amounts = f"{signal.currency} {signal.amount} vs {claim.claim_currency} {claim.claim_amount}"

        # Compare as Decimal so a 1.00% difference is not lost to float rounding
        if difference_percent <= Decimal(str(self.thresholds.exact_amount_tolerance)):
            return (
                self.thresholds.exact_amount_score,
                MatchReasonType.EXACT_AMOUNT,
                f"Exact amount match ({amounts})",
                details,
            )
        if difference_percent <= Decimal(str(self.thresholds.approximate_amount_tolerance)):
            return (
                self.thresholds.approximate_amount_score,
                MatchReasonType.APPROXIMATE_AMOUNT,
                f"Approximate amount match ({amounts}, {float(difference_percent):.1%} off)",
                details,
            )
        return 0, None, None, details

    def _proximity_score(self, document: MedicalDocument, days: int) -> float:
        t = self.thresholds
        if not document.is_calendar:
            return t.date_proximity_bonus
        if t.date_proximity_days <= 0:
            return t.exact_amount_score
        return t.exact_amount_score * (1 - days / t.date_proximity_days)

    def _provider_matches(self, document: MedicalDocument, claim: ScrapedClaim) -> bool:
        if self.provider_comparator(document, claim):
            return True
        if not document.is_calendar:
            return False
        descriptions = " ".join(item.treatment_description for item in claim.line_items).lower()
        return any(
            text.strip() and text.strip().lower() in descriptions
            for text in (document.calendar_summary, document.calendar_location)
            if text
        )

    def score(self, document: MedicalDocument, claim: ScrapedClaim) -> MatchResult:
        """Score a document against a claim."""
        t = self.thresholds
        reasons: list[str] = []
        reason_type: Optional[MatchReasonType] = None
        disqualified = False

        score, amount_type, amount_reason, amount_details = self._score_amount(document, claim)
        if amount_type is not None:
            reason_type = amount_type
            reasons.append(amount_reason)

        date_details: Optional[DateMatchDetails] = None
        document_date = document.effective_date
        if document_date is None:
            score -= t.missing_date_penalty
            reasons.append("Document has no date")
        else:
            doc_day = as_date(document_date)
            claim_day = min(claim.treatment_dates, key=lambda day: abs((doc_day - day).days))
            days = abs((doc_day - claim_day).days)
            date_details = DateMatchDetails(
                document_date=doc_day, claim_date=claim_day, days_difference=days
            )
            if days <= t.date_proximity_days:
                score += self._proximity_score(document, days)
                reason_type = reason_type or MatchReasonType.DATE_PROXIMITY
                reasons.append(f"Date within {days} days")
            elif days > t.date_mismatch_penalty_threshold:
                score -= t.date_mismatch_penalty
                reasons.append(f"Date {days} days apart")
            if days > t.max_date_mismatch_days:
                disqualified = True

        if self._provider_matches(document, claim):
            score += t.provider_match_bonus * (2 if document.is_calendar else 1)
            reason_type = reason_type or MatchReasonType.PROVIDER_MATCH
            reasons.append("Provider match")

        score = max(0.0, min(100.0, float(score)))
        is_candidate = (
            not disqualified and reason_type is not None and score >= t.minimum_candidate_score
        )

        return MatchResult(
            score=score,
            reason_type=reason_type,
            reason="; ".join(reasons),
            is_candidate=is_candidate,
            disqualified=disqualified,
            amount_match_details=amount_details,
            date_match_details=date_details,
            reasons=reasons,
        )
