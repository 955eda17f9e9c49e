"""
Evidence Document Grouping.

Attachments from the same email are one claim unit. Calendar entries are
never grouped by message id: they are appointment evidence and get attached
to drafts explicitly as treatment-date evidence.
"""

from typing import Iterable

from src.schemas.document import MedicalDocument


def get_active_documents(documents: Iterable[MedicalDocument]) -> list[MedicalDocument]:
    """Drop archived documents, keeping order."""
    return [document for document in documents if not document.is_archived]


def group_documents(
    selected: MedicalDocument,
    documents: Iterable[MedicalDocument],
) -> list[MedicalDocument]:
    """
    Evidence group for a selected document.

    Args:
        selected: Document picked by the caller
        documents: Active document pool, in stable order

    Returns:
        Every active non-calendar document sharing the selected document's
        message id, or just the selected document when it has no message id
        or is calendar-derived.
    """
    if not selected.email_id or selected.is_calendar:
        return [selected]

    group = [
        document
        for document in documents
        if document.email_id == selected.email_id
        and not document.is_calendar
        and not document.is_archived
    ]
    return group or [selected]
