"""
Unit tests for evidence document grouping.
"""

from datetime import date

import pytest

from src.core.enums import DocumentSourceType
from src.schemas.common import utcnow
from src.services.document_grouping import get_active_documents, group_documents


@pytest.mark.unit
class TestGroupDocuments:
    """Tests for group_documents."""

    def test_groups_attachments_of_one_email(self, make_document):
        invoice = make_document(email_id="msg-1")
        receipt = make_document(email_id="msg-1")
        other = make_document(email_id="msg-2")

        group = group_documents(invoice, [invoice, receipt, other])

        assert [d.id for d in group] == [invoice.id, receipt.id]

    def test_document_without_email_stands_alone(self, make_document):
        loose = make_document()
        assert group_documents(loose, [loose, make_document()]) == [loose]

    def test_calendar_document_is_never_grouped(self, make_document):
        event = make_document(
            email_id="msg-1", source_type=DocumentSourceType.CALENDAR, on=date(2026, 1, 10)
        )
        attachment = make_document(email_id="msg-1")
        assert group_documents(event, [event, attachment]) == [event]
        assert group_documents(attachment, [event, attachment]) == [attachment]

    def test_archived_documents_are_left_out(self, make_document):
        selected = make_document(email_id="msg-1")
        archived = make_document(email_id="msg-1", archived_at=utcnow())
        assert group_documents(selected, [selected, archived]) == [selected]

    def test_selected_outside_pool_falls_back_to_itself(self, make_document):
        selected = make_document(email_id="msg-9")
        assert group_documents(selected, []) == [selected]


@pytest.mark.unit
def test_get_active_documents_keeps_order(make_document):
    first = make_document()
    archived = make_document(archived_at=utcnow())
    last = make_document()
    assert get_active_documents([first, archived, last]) == [first, last]
