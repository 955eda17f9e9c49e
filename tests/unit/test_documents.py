"""
Unit tests for document operations and archive rules.
"""

from decimal import Decimal

import pytest

from src.core.enums import DocumentClassification, DocumentSourceType, IngestionMode
from src.gateways.ingestion import ScanResult
from src.schemas.archive_rule import ArchiveRule, ArchiveRuleCreate, ArchiveRuleUpdate
from src.schemas.document import MedicalDocumentCreate, MedicalDocumentUpdate, PaymentOverrideInput
from src.services.documents import DocumentService, matches_archive_rule
from src.utils.errors import ValidationError


@pytest.fixture
def service(storage, settings):
    return DocumentService(storage, settings)


def _create(**fields) -> MedicalDocumentCreate:
    fields.setdefault("source_type", DocumentSourceType.ATTACHMENT)
    return MedicalDocumentCreate(**fields)


@pytest.mark.unit
class TestMatchesArchiveRule:
    """Tests for matches_archive_rule."""

    def test_every_present_criterion_must_match(self, make_document):
        rule = ArchiveRule(name="newsletters", from_contains="NEWS@", subject_contains="weekly")
        document = make_document(from_address="news@clinic.example", subject="Your Weekly digest")

        assert matches_archive_rule(rule, document)
        assert not matches_archive_rule(
            rule, make_document(from_address="news@clinic.example", subject="Invoice")
        )

    def test_disabled_or_empty_rules_never_match(self, make_document):
        document = make_document(filename="promo.pdf")
        assert not matches_archive_rule(
            ArchiveRule(name="off", enabled=False, attachment_name_contains="promo"), document
        )
        assert not matches_archive_rule(ArchiveRule(name="empty"), document)


@pytest.mark.unit
class TestDocumentService:
    """Tests for DocumentService."""

    @pytest.mark.asyncio
    async def test_payment_override_round_trip(self, service):
        document = await service.create(_create(filename="bill.pdf"))

        updated = await service.set_payment_override(
            document.id, PaymentOverrideInput(amount=Decimal("50"), currency="eur", note="fixed")
        )
        assert updated.payment_override.amount == Decimal("50")
        assert updated.payment_override.currency == "EUR"

        cleared = await service.clear_payment_override(document.id)
        assert cleared.payment_override is None

    @pytest.mark.asyncio
    async def test_missing_document_returns_none(self, service):
        assert await service.archive_document("missing") is None
        assert await service.update("missing", MedicalDocumentUpdate(provider_name="x")) is None

    @pytest.mark.asyncio
    async def test_archive_and_unarchive(self, service):
        document = await service.create(_create())

        archived = await service.archive_document(document.id, "duplicate")
        assert archived.is_archived
        assert archived.archived_reason == "duplicate"
        assert await service.list_documents() == []
        assert len(await service.list_documents(include_archived=True)) == 1

        restored = await service.unarchive_document(document.id)
        assert not restored.is_archived
        assert restored.archived_reason is None

    @pytest.mark.asyncio
    async def test_update_and_classification(self, service):
        document = await service.create(_create())

        updated = await service.update(
            document.id, MedicalDocumentUpdate(provider_name="City Clinic")
        )
        reclassified = await service.update_classification(
            document.id, DocumentClassification.RECEIPT
        )

        assert updated.provider_name == "City Clinic"
        assert reclassified.classification == DocumentClassification.RECEIPT
        assert reclassified.provider_name == "City Clinic"

    @pytest.mark.asyncio
    async def test_new_documents_honour_archive_rules(self, service):
        rule = await service.create_archive_rule(
            ArchiveRuleCreate(name="Promotions", subject_contains="offer")
        )

        document = await service.create(_create(subject="Special OFFER inside"))

        assert document.archived_by_rule_id == rule.id
        assert document.archived_reason == "Rule: Promotions"

    @pytest.mark.asyncio
    async def test_rule_needs_criteria(self, service):
        with pytest.raises(ValidationError):
            await service.create_archive_rule(ArchiveRuleCreate(name="everything"))

        rule = await service.create_archive_rule(
            ArchiveRuleCreate(name="promo", subject_contains="offer")
        )
        with pytest.raises(ValidationError):
            await service.update_archive_rule(rule.id, ArchiveRuleUpdate(subject_contains=None))

    @pytest.mark.asyncio
    async def test_apply_rule_to_existing_documents(self, service):
        match = await service.create(_create(from_address="ads@shop.example"))
        await service.create(_create(from_address="billing@clinic.example"))
        manually_archived = await service.create(_create(from_address="ads@shop.example"))
        await service.archive_document(manually_archived.id, "by hand")

        rule = await service.create_archive_rule(
            ArchiveRuleCreate(name="Shop ads", from_contains="shop.example")
        )
        archived = await service.apply_archive_rule_to_existing_documents(rule.id)
        again = await service.apply_archive_rule_to_existing_documents(rule.id)

        assert [d.id for d in archived] == [match.id]
        assert again == []
        assert await service.apply_archive_rule_to_existing_documents("missing") is None

    @pytest.mark.asyncio
    async def test_rule_crud(self, service):
        rule = await service.create_archive_rule(
            ArchiveRuleCreate(name="promo", subject_contains="offer")
        )

        renamed = await service.update_archive_rule(rule.id, ArchiveRuleUpdate(name="Promotions"))

        assert renamed.name == "Promotions"
        assert [r.id for r in await service.list_archive_rules()] == [rule.id]
        assert await service.delete_archive_rule(rule.id)
        assert not await service.delete_archive_rule(rule.id)


@pytest.mark.unit
class TestIngest:
    """Upserting scan results."""

    @pytest.mark.asyncio
    async def test_rescan_updates_in_place(self, service):
        scan = ScanResult(
            mode=IngestionMode.FULL,
            documents=[_create(email_id="msg-1", filename="bill.pdf", ocr_text="draft")],
            skipped=1,
        )
        first = await service.ingest(scan)
        [document] = await service.list_documents()
        await service.set_payment_override(
            document.id, PaymentOverrideInput(amount=Decimal("40"), currency="EUR")
        )

        rescan = ScanResult(
            mode=IngestionMode.INCREMENTAL,
            documents=[_create(email_id="msg-1", filename="bill.pdf", ocr_text="final")],
        )
        second = await service.ingest(rescan)

        assert first == {"created": 1, "updated": 0, "skipped": 1}
        assert second == {"created": 0, "updated": 1, "skipped": 0}
        [refreshed] = await service.list_documents()
        assert refreshed.id == document.id
        assert refreshed.ocr_text == "final"
        assert refreshed.payment_override.amount == Decimal("40")

    @pytest.mark.asyncio
    async def test_calendar_entries_keyed_by_event(self, service):
        scan = ScanResult(
            mode=IngestionMode.FULL,
            documents=[
                _create(source_type=DocumentSourceType.CALENDAR, calendar_event_id="evt-1"),
                _create(source_type=DocumentSourceType.CALENDAR, calendar_event_id="evt-2"),
            ],
        )
        await service.ingest(scan)
        await service.ingest(scan)

        calendar = await service.list_documents(source_type=DocumentSourceType.CALENDAR)
        assert len(calendar) == 2
