"""
Evidence Document API Endpoints.

Provides:
- Document listing, import and classification edits
- Payment overrides
- Archive / unarchive and archive rules
- Promotion of a document into a draft claim
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.api.deps import get_container, not_found
from src.core.enums import DocumentSourceType
from src.schemas.archive_rule import ArchiveRule, ArchiveRuleCreate, ArchiveRuleUpdate
from src.schemas.document import (
    ArchiveDocumentInput,
    MedicalDocument,
    MedicalDocumentCreate,
    MedicalDocumentUpdate,
    PaymentOverrideInput,
)
from src.schemas.draft_claim import PromoteDraftResult
from src.services.container import ServiceContainer

router = APIRouter(
    prefix="/api/v1/documents",
    tags=["documents"],
)


@router.get("", response_model=list[MedicalDocument])
async def list_documents(
    include_archived: bool = Query(False),
    source_type: Optional[DocumentSourceType] = Query(None),
    container: ServiceContainer = Depends(get_container),
) -> list[MedicalDocument]:
    return await container.documents.list_documents(include_archived, source_type)


@router.post("", response_model=MedicalDocument, status_code=status.HTTP_201_CREATED)
async def create_document(
    data: MedicalDocumentCreate,
    container: ServiceContainer = Depends(get_container),
) -> MedicalDocument:
    """Import a document produced outside the ingestion scans."""
    return await container.documents.create(data)


# Archive rule routes are declared before /{document_id} so the path is not captured


@router.get("/archive-rules", response_model=list[ArchiveRule])
async def list_archive_rules(
    container: ServiceContainer = Depends(get_container),
) -> list[ArchiveRule]:
    return await container.documents.list_archive_rules()


@router.post("/archive-rules", response_model=ArchiveRule, status_code=status.HTTP_201_CREATED)
async def create_archive_rule(
    data: ArchiveRuleCreate,
    container: ServiceContainer = Depends(get_container),
) -> ArchiveRule:
    return await container.documents.create_archive_rule(data)


@router.patch("/archive-rules/{rule_id}", response_model=ArchiveRule)
async def update_archive_rule(
    rule_id: str,
    data: ArchiveRuleUpdate,
    container: ServiceContainer = Depends(get_container),
) -> ArchiveRule:
    rule = await container.documents.update_archive_rule(rule_id, data)
    if rule is None:
        raise not_found("Archive rule", rule_id)
    return rule


@router.delete("/archive-rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_archive_rule(
    rule_id: str,
    container: ServiceContainer = Depends(get_container),
) -> None:
    if not await container.documents.delete_archive_rule(rule_id):
        raise not_found("Archive rule", rule_id)


@router.post("/archive-rules/{rule_id}/apply", response_model=list[MedicalDocument])
async def apply_archive_rule(
    rule_id: str,
    container: ServiceContainer = Depends(get_container),
) -> list[MedicalDocument]:
    """Archive existing active documents matching the rule."""
    archived = await container.documents.apply_archive_rule_to_existing_documents(rule_id)
    if archived is None:
        raise not_found("Archive rule", rule_id)
    return archived


@router.get("/{document_id}", response_model=MedicalDocument)
async def get_document(
    document_id: str,
    container: ServiceContainer = Depends(get_container),
) -> MedicalDocument:
    document = await container.documents.get(document_id)
    if document is None:
        raise not_found("Document", document_id)
    return document


@router.patch("/{document_id}", response_model=MedicalDocument)
async def update_document(
    document_id: str,
    data: MedicalDocumentUpdate,
    container: ServiceContainer = Depends(get_container),
) -> MedicalDocument:
    document = await container.documents.update(document_id, data)
    if document is None:
        raise not_found("Document", document_id)
    return document


@router.put("/{document_id}/payment-override", response_model=MedicalDocument)
async def set_payment_override(
    document_id: str,
    data: PaymentOverrideInput,
    container: ServiceContainer = Depends(get_container),
) -> MedicalDocument:
    document = await container.documents.set_payment_override(document_id, data)
    if document is None:
        raise not_found("Document", document_id)
    return document


@router.delete("/{document_id}/payment-override", response_model=MedicalDocument)
async def clear_payment_override(
    document_id: str,
    container: ServiceContainer = Depends(get_container),
) -> MedicalDocument:
    document = await container.documents.clear_payment_override(document_id)
    if document is None:
        raise not_found("Document", document_id)
    return document


@router.post("/{document_id}/archive", response_model=MedicalDocument)
async def archive_document(
    document_id: str,
    data: ArchiveDocumentInput,
    container: ServiceContainer = Depends(get_container),
) -> MedicalDocument:
    document = await container.documents.archive_document(document_id, data.reason)
    if document is None:
        raise not_found("Document", document_id)
    return document


@router.post("/{document_id}/unarchive", response_model=MedicalDocument)
async def unarchive_document(
    document_id: str,
    container: ServiceContainer = Depends(get_container),
) -> MedicalDocument:
    document = await container.documents.unarchive_document(document_id)
    if document is None:
        raise not_found("Document", document_id)
    return document


@router.post("/{document_id}/promote", response_model=PromoteDraftResult)
async def promote_document(
    document_id: str,
    container: ServiceContainer = Depends(get_container),
) -> PromoteDraftResult:
    """Create or expand a draft claim from the document's evidence group."""
    return await container.promoter.promote_by_id(document_id)
