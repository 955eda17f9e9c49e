"""
Unit tests for document-claim match scoring.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from src.core.config import MatchThresholds
from src.core.enums import DocumentSourceType, MatchReasonType
from src.schemas.claim import ScrapedLineItem
from src.services.match_scorer import MatchScorer, default_provider_comparator

CLAIM_DAY = date(2026, 1, 10)


@pytest.fixture
def scorer():
    return MatchScorer(MatchThresholds())


@pytest.fixture
def claim(make_claim):
    return make_claim(amount="100.00", on=CLAIM_DAY)


@pytest.mark.unit
class TestAmountAndDate:
    """Scoring outcomes from the amount and date components."""

    def test_one_percent_off_within_a_week(self, scorer, claim, make_document):
        document = make_document(amounts=[(101, "EUR", 90)], on=date(2026, 1, 15))

        result = scorer.score(document, claim)

        assert result.score == 95
        assert result.reason_type == MatchReasonType.EXACT_AMOUNT
        assert result.is_candidate
        assert result.date_match_details.days_difference == 5
        assert result.amount_match_details.difference == Decimal("1")

    def test_more_than_ninety_days_disqualifies(self, scorer, claim, make_document):
        document = make_document(amounts=[(100, "EUR", 90)], on=date(2026, 5, 1))

        result = scorer.score(document, claim)

        assert result.disqualified
        assert not result.is_candidate

    def test_between_proximity_and_penalty_windows(self, scorer, claim, make_document):
        document = make_document(amounts=[(100.5, "EUR", 90)], on=date(2026, 2, 24))

        result = scorer.score(document, claim)

        assert result.date_match_details.days_difference == 45
        assert result.score == 80
        assert result.is_candidate

    def test_penalty_past_sixty_days(self, scorer, claim, make_document):
        document = make_document(amounts=[(100, "EUR", 90)], on=date(2026, 3, 21))

        result = scorer.score(document, claim)

        assert result.score == 40
        assert not result.disqualified
        assert not result.is_candidate

    def test_approximate_amount(self, scorer, claim, make_document):
        document = make_document(amounts=[(105, "EUR", 90)], on=CLAIM_DAY)

        result = scorer.score(document, claim)

        assert result.score == 75
        assert result.reason_type == MatchReasonType.APPROXIMATE_AMOUNT

    def test_date_alone_is_not_enough(self, scorer, claim, make_document):
        document = make_document(amounts=[(300, "EUR", 90)], on=CLAIM_DAY)

        result = scorer.score(document, claim)

        assert result.score == 15
        assert result.reason_type == MatchReasonType.DATE_PROXIMITY
        assert not result.is_candidate

    def test_missing_date_costs_half_the_penalty(self, scorer, claim, make_document):
        document = make_document(amounts=[(100, "EUR", 90)])

        result = scorer.score(document, claim)

        assert result.score == 60
        assert result.date_match_details is None
        assert result.is_candidate

    def test_currency_mismatch_never_matches_amount(self, scorer, claim, make_document):
        document = make_document(amounts=[(100, "USD", 90)], on=CLAIM_DAY)

        result = scorer.score(document, claim)

        assert result.reason_type == MatchReasonType.DATE_PROXIMITY
        assert result.amount_match_details.difference is None
        assert result.score == 15

    def test_zero_claim_amount_is_a_full_difference(self, scorer, make_claim, make_document):
        claim = make_claim(amount="0", on=CLAIM_DAY)
        document = make_document(amounts=[(0, "EUR", 90)], on=CLAIM_DAY)

        result = scorer.score(document, claim)

        assert result.amount_match_details.difference_percent == 1.0
        assert result.reason_type == MatchReasonType.DATE_PROXIMITY

    def test_closest_signal_is_compared(self, scorer, claim, make_document):
        document = make_document(amounts=[(20, "EUR", 99), (100, "EUR", 10)], on=CLAIM_DAY)
        assert scorer.score(document, claim).reason_type == MatchReasonType.EXACT_AMOUNT

    def test_override_replaces_detected_amounts(self, scorer, claim, make_document):
        document = make_document(
            amounts=[(100, "EUR", 99)], override=(250, "EUR", "two sessions"), on=CLAIM_DAY
        )
        assert scorer.score(document, claim).reason_type == MatchReasonType.DATE_PROXIMITY

    def test_nearest_line_item_date_is_used(self, scorer, make_claim, make_document):
        claim = make_claim(
            amount="100",
            on=CLAIM_DAY,
            line_items=[
                ScrapedLineItem(
                    treatment_date=date(2026, 3, 1),
                    claim_amount=Decimal("100"),
                    claim_currency="EUR",
                )
            ],
        )
        document = make_document(amounts=[(100, "EUR", 90)], on=date(2026, 3, 2))

        result = scorer.score(document, claim)

        assert result.date_match_details.claim_date == date(2026, 3, 1)
        assert result.score == 95

    def test_calendar_documents_only_score_on_date(self, scorer, claim, make_document):
        event = make_document(
            source_type=DocumentSourceType.CALENDAR,
            amounts=[(100, "EUR", 90)],
            calendar_start=datetime(2026, 1, 11, 14, 0, tzinfo=timezone.utc),
        )

        result = scorer.score(event, claim)

        assert result.amount_match_details is None
        assert result.score == pytest.approx(80 * (1 - 1 / 30))
        assert result.reason_type == MatchReasonType.DATE_PROXIMITY
        assert result.is_candidate

    def test_calendar_same_day_with_summary_hit(self, scorer, make_claim, make_document):
        claim = make_claim(
            on=CLAIM_DAY,
            line_items=[
                ScrapedLineItem(
                    treatment_description="Physiotherapy session",
                    treatment_date=CLAIM_DAY,
                    claim_amount=Decimal("100"),
                    claim_currency="EUR",
                )
            ],
        )
        event = make_document(
            source_type=DocumentSourceType.CALENDAR,
            calendar_summary="Physiotherapy",
            calendar_start=datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc),
        )

        result = scorer.score(event, claim)

        assert result.score == 100
        assert "Provider match" in result.reasons

    def test_calendar_provider_hit_is_worth_double(self, scorer, make_claim, make_document):
        claim = make_claim(on=CLAIM_DAY, provider_name="Dr. Smith")
        event = make_document(
            source_type=DocumentSourceType.CALENDAR,
            provider_name="Dr. Smith",
            calendar_start=datetime(2026, 1, 25, 9, 0, tzinfo=timezone.utc),
        )

        result = scorer.score(event, claim)

        assert result.score == pytest.approx(80 * (1 - 15 / 30) + 20)
        assert result.is_candidate

    def test_calendar_outside_window_is_not_a_candidate(self, scorer, claim, make_document):
        event = make_document(
            source_type=DocumentSourceType.CALENDAR,
            calendar_start=datetime(2026, 2, 20, 9, 0, tzinfo=timezone.utc),
        )

        result = scorer.score(event, claim)

        assert result.score == 0
        assert not result.is_candidate


@pytest.mark.unit
class TestProviderAndClamping:
    """Provider bonus and score bounds."""

    def test_score_is_clamped_to_100(self, scorer, make_claim, make_document):
        claim = make_claim(amount="100", on=CLAIM_DAY, provider_name="Dr. Smith")
        document = make_document(
            amounts=[(100, "EUR", 90)], on=CLAIM_DAY, provider_name="dr. smith"
        )

        result = scorer.score(document, claim)

        assert result.score == 100
        assert "Provider match" in result.reasons

    def test_custom_provider_comparator(self, make_claim, make_document):
        scorer = MatchScorer(MatchThresholds(), provider_comparator=lambda d, c: True)
        document = make_document(on=date(2026, 4, 1))
        result = scorer.score(document, make_claim(on=CLAIM_DAY))
        assert result.reason_type == MatchReasonType.PROVIDER_MATCH

    def test_scoring_is_deterministic(self, scorer, claim, make_document):
        document = make_document(amounts=[(97, "EUR", 90)], on=date(2026, 1, 20))
        assert scorer.score(document, claim) == scorer.score(document, claim)


@pytest.mark.unit
class TestDefaultProviderComparator:
    """Tests for default_provider_comparator."""

    def test_falls_back_to_line_item_keywords(self, make_claim, make_document):
        claim = make_claim(
            line_items=[
                ScrapedLineItem(
                    treatment_description="Physiotherapy session",
                    treatment_date=CLAIM_DAY,
                    claim_amount=Decimal("60"),
                    claim_currency="EUR",
                )
            ]
        )
        assert default_provider_comparator(
            make_document(medical_keywords=["physiotherapy"]), claim
        )
        assert not default_provider_comparator(make_document(medical_keywords=["dental"]), claim)

    def test_no_names_and_no_line_items(self, make_claim, make_document):
        assert not default_provider_comparator(make_document(), make_claim())
