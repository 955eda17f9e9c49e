"""
Draft Claim API Endpoints.

Review queue for generated and promoted draft claims.
"""

from fastapi import APIRouter, Depends, status

from src.api.deps import get_container, not_found
from src.schemas.draft_claim import (
    CalendarEvidenceInput,
    DraftClaim,
    DraftClaimAccept,
    DraftClaimUpdate,
    GenerateDraftClaimsRequest,
    TreatmentDateInput,
)
from src.services.container import ServiceContainer

router = APIRouter(
    prefix="/api/v1/draft-claims",
    tags=["draft-claims"],
)


@router.get("", response_model=list[DraftClaim])
async def list_draft_claims(
    container: ServiceContainer = Depends(get_container),
) -> list[DraftClaim]:
    """Pending drafts in review order."""
    return await container.draft_claims.list_for_review()


@router.post("/generate", response_model=list[DraftClaim], status_code=status.HTTP_201_CREATED)
async def generate_draft_claims(
    data: GenerateDraftClaimsRequest,
    container: ServiceContainer = Depends(get_container),
) -> list[DraftClaim]:
    return await container.generator.generate(data.range, data.as_of)


@router.get("/{draft_id}", response_model=DraftClaim)
async def get_draft_claim(
    draft_id: str,
    container: ServiceContainer = Depends(get_container),
) -> DraftClaim:
    draft = await container.draft_claims.get(draft_id)
    if draft is None:
        raise not_found("Draft claim", draft_id)
    return draft


@router.patch("/{draft_id}", response_model=DraftClaim)
async def update_draft_claim(
    draft_id: str,
    data: DraftClaimUpdate,
    container: ServiceContainer = Depends(get_container),
) -> DraftClaim:
    draft = await container.draft_claims.update(draft_id, data)
    if draft is None:
        raise not_found("Draft claim", draft_id)
    return draft


@router.post("/{draft_id}/accept", response_model=DraftClaim)
async def accept_draft_claim(
    draft_id: str,
    data: DraftClaimAccept,
    container: ServiceContainer = Depends(get_container),
) -> DraftClaim:
    draft = await container.draft_claims.accept(draft_id, data)
    if draft is None:
        raise not_found("Draft claim", draft_id)
    return draft


@router.post("/{draft_id}/reject", response_model=DraftClaim)
async def reject_draft_claim(
    draft_id: str,
    container: ServiceContainer = Depends(get_container),
) -> DraftClaim:
    draft = await container.draft_claims.reject(draft_id)
    if draft is None:
        raise not_found("Draft claim", draft_id)
    return draft


@router.put("/{draft_id}/treatment-date", response_model=DraftClaim)
async def set_treatment_date(
    draft_id: str,
    data: TreatmentDateInput,
    container: ServiceContainer = Depends(get_container),
) -> DraftClaim:
    draft = await container.draft_claims.set_treatment_date(draft_id, data.treatment_date)
    if draft is None:
        raise not_found("Draft claim", draft_id)
    return draft


@router.post("/{draft_id}/calendar-evidence", response_model=DraftClaim)
async def attach_calendar_evidence(
    draft_id: str,
    data: CalendarEvidenceInput,
    container: ServiceContainer = Depends(get_container),
) -> DraftClaim:
    """Take the treatment date from a calendar entry."""
    draft = await container.draft_claims.attach_calendar_evidence(
        draft_id, data.calendar_document_id
    )
    if draft is None:
        raise not_found("Draft claim", draft_id)
    return draft
