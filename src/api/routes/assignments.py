"""
Document-Claim Assignment API Endpoints.

Review surface for matching candidates: listing, confirmation, rejection,
manual links and targeted re-matching.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.api.deps import get_container, not_found
from src.core.enums import AssignmentStatus
from src.schemas.assignment import (
    AssignmentConfirm,
    AssignmentReject,
    AssignmentStats,
    DocumentClaimAssignment,
    ManualAssignmentCreate,
    MatchDocumentsRequest,
    MatchStats,
)
from src.services.container import ServiceContainer

router = APIRouter(
    prefix="/api/v1/assignments",
    tags=["assignments"],
)


@router.get("", response_model=list[DocumentClaimAssignment])
async def list_assignments(
    status_filter: Optional[AssignmentStatus] = Query(None, alias="status"),
    document_id: Optional[str] = Query(None),
    claim_id: Optional[str] = Query(None),
    container: ServiceContainer = Depends(get_container),
) -> list[DocumentClaimAssignment]:
    engine = container.assignments
    if document_id:
        assignments = await engine.get_for_document(document_id)
    elif claim_id:
        assignments = await engine.get_for_claim(claim_id)
    elif status_filter is not None:
        assignments = await engine.get_by_status(status_filter)
    else:
        assignments = await engine.get_all()

    return [
        assignment
        for assignment in assignments
        if (status_filter is None or assignment.status == status_filter)
        and (claim_id is None or assignment.claim_id == claim_id)
    ]


@router.get("/stats", response_model=AssignmentStats)
async def assignment_stats(
    container: ServiceContainer = Depends(get_container),
) -> AssignmentStats:
    return await container.assignments.get_stats()


@router.get("/high-confidence", response_model=list[DocumentClaimAssignment])
async def high_confidence_candidates(
    min_score: Optional[float] = Query(None, ge=0, le=100),
    container: ServiceContainer = Depends(get_container),
) -> list[DocumentClaimAssignment]:
    return await container.assignments.get_high_confidence_candidates(min_score)


@router.post("", response_model=DocumentClaimAssignment, status_code=status.HTTP_201_CREATED)
async def create_manual_assignment(
    data: ManualAssignmentCreate,
    container: ServiceContainer = Depends(get_container),
) -> DocumentClaimAssignment:
    return await container.assignments.create_manual_assignment(data)


@router.post("/match", response_model=MatchStats)
async def match_documents(
    data: MatchDocumentsRequest,
    container: ServiceContainer = Depends(get_container),
) -> MatchStats:
    """Re-run matching for the given documents only."""
    return await container.assignments.match_documents_by_ids(data.document_ids)


@router.get("/{assignment_id}", response_model=DocumentClaimAssignment)
async def get_assignment(
    assignment_id: str,
    container: ServiceContainer = Depends(get_container),
) -> DocumentClaimAssignment:
    assignment = await container.assignments.get(assignment_id)
    if assignment is None:
        raise not_found("Assignment", assignment_id)
    return assignment


@router.post("/{assignment_id}/confirm", response_model=DocumentClaimAssignment)
async def confirm_assignment(
    assignment_id: str,
    data: AssignmentConfirm,
    container: ServiceContainer = Depends(get_container),
) -> DocumentClaimAssignment:
    assignment = await container.assignments.confirm(assignment_id, data)
    if assignment is None:
        raise not_found("Assignment", assignment_id)
    return assignment


@router.post("/{assignment_id}/reject", response_model=DocumentClaimAssignment)
async def reject_assignment(
    assignment_id: str,
    data: AssignmentReject,
    container: ServiceContainer = Depends(get_container),
) -> DocumentClaimAssignment:
    assignment = await container.assignments.reject(assignment_id, data.review_notes)
    if assignment is None:
        raise not_found("Assignment", assignment_id)
    return assignment


@router.delete("/documents/{document_id}/candidates")
async def clear_document_candidates(
    document_id: str,
    container: ServiceContainer = Depends(get_container),
) -> dict[str, int]:
    """Drop unreviewed candidates of a document."""
    cleared = await container.assignments.clear_candidates_for_document(document_id)
    return {"cleared": cleared}
