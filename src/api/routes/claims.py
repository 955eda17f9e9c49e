"""
Claims API Endpoints.

Two kinds of claims live here:
- Insurer claims reported by the scraper collaborator (matching targets)
- Local claims created from accepted drafts and filed through submission
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.api.deps import get_container, not_found
from src.core.enums import ClaimStatus
from src.schemas.claim import (
    Claim,
    ClaimCreate,
    ClaimFromDraftInput,
    ClaimStatusReport,
    ClaimTransitionRequest,
    ClaimUpdate,
    ScrapedClaim,
    ScrapedClaimCreate,
)
from src.services.container import ServiceContainer

router = APIRouter(
    prefix="/api/v1",
    tags=["claims"],
)


# =============================================================================
# Insurer Claims
# =============================================================================


@router.get("/insurer-claims", response_model=list[ScrapedClaim])
async def list_insurer_claims(
    include_archived: bool = Query(False),
    container: ServiceContainer = Depends(get_container),
) -> list[ScrapedClaim]:
    return await container.assignments.list_scraped_claims(include_archived)


@router.post("/insurer-claims", response_model=ScrapedClaim)
async def upsert_insurer_claim(
    data: ScrapedClaimCreate,
    container: ServiceContainer = Depends(get_container),
) -> ScrapedClaim:
    """Record a scraped claim; an existing claim number is refreshed in place."""
    return await container.assignments.upsert_scraped_claim(data)


@router.get("/insurer-claims/{claim_id}", response_model=ScrapedClaim)
async def get_insurer_claim(
    claim_id: str,
    container: ServiceContainer = Depends(get_container),
) -> ScrapedClaim:
    claim = await container.assignments.get_scraped_claim(claim_id)
    if claim is None:
        raise not_found("Insurer claim", claim_id)
    return claim


# =============================================================================
# Local Claims
# =============================================================================


@router.get("/claims", response_model=list[Claim])
async def list_claims(
    status_filter: Optional[ClaimStatus] = Query(None, alias="status"),
    container: ServiceContainer = Depends(get_container),
) -> list[Claim]:
    if status_filter is not None:
        return await container.lifecycle.get_by_status(status_filter)
    return await container.lifecycle.get_all()


@router.post("/claims", response_model=Claim, status_code=status.HTTP_201_CREATED)
async def create_claim(
    data: ClaimCreate,
    container: ServiceContainer = Depends(get_container),
) -> Claim:
    return await container.lifecycle.create(data)


@router.post(
    "/claims/from-draft/{draft_id}",
    response_model=Claim,
    status_code=status.HTTP_201_CREATED,
)
async def create_claim_from_draft(
    draft_id: str,
    data: ClaimFromDraftInput,
    container: ServiceContainer = Depends(get_container),
) -> Claim:
    return await container.lifecycle.create_claim_from_draft(draft_id, data)


@router.post("/claims/status-reports")
async def apply_status_reports(
    reports: list[ClaimStatusReport],
    container: ServiceContainer = Depends(get_container),
) -> dict[str, int]:
    """Apply insurer status reports pushed by the submission collaborator."""
    return await container.lifecycle.apply_status_reports(reports)


@router.get("/claims/{claim_id}", response_model=Claim)
async def get_claim(
    claim_id: str,
    container: ServiceContainer = Depends(get_container),
) -> Claim:
    claim = await container.lifecycle.get(claim_id)
    if claim is None:
        raise not_found("Claim", claim_id)
    return claim


@router.patch("/claims/{claim_id}", response_model=Claim)
async def update_claim(
    claim_id: str,
    data: ClaimUpdate,
    container: ServiceContainer = Depends(get_container),
) -> Claim:
    return await container.lifecycle.update(claim_id, data)


@router.post("/claims/{claim_id}/transition", response_model=Claim)
async def transition_claim(
    claim_id: str,
    data: ClaimTransitionRequest,
    container: ServiceContainer = Depends(get_container),
) -> Claim:
    return await container.lifecycle.transition(claim_id, data)


@router.post("/claims/{claim_id}/submit", response_model=Claim)
async def submit_claim(
    claim_id: str,
    changed_by: Optional[str] = Query(None),
    container: ServiceContainer = Depends(get_container),
) -> Claim:
    return await container.lifecycle.submit_claim(claim_id, changed_by)
