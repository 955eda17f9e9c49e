"""
Scheduler Trigger Endpoints.

Run a scheduler job on demand. The run shares the job's guard with the
background loop, so a job that is already running answers 409.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.deps import get_container
from src.core.enums import DraftClaimRange, IngestionMode
from src.services.container import ServiceContainer
from src.services.scheduler import JobRun, JobStatus

router = APIRouter(
    prefix="/api/v1/triggers",
    tags=["triggers"],
)


def _respond(run: JobRun) -> JobRun:
    if run.status == JobStatus.SKIPPED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{run.job} is already running",
        )
    return run


@router.post("/scan-documents", response_model=JobRun)
async def trigger_scan_documents(
    mode: IngestionMode = Query(IngestionMode.INCREMENTAL),
    container: ServiceContainer = Depends(get_container),
) -> JobRun:
    return _respond(await container.scheduler.scan_documents(mode))


@router.post("/scan-calendar", response_model=JobRun)
async def trigger_scan_calendar(
    container: ServiceContainer = Depends(get_container),
) -> JobRun:
    return _respond(await container.scheduler.scan_calendar())


@router.post("/run-matching", response_model=JobRun)
async def trigger_run_matching(
    container: ServiceContainer = Depends(get_container),
) -> JobRun:
    return _respond(await container.scheduler.run_matching())


@router.post("/generate-drafts", response_model=JobRun)
async def trigger_generate_drafts(
    range_: Optional[DraftClaimRange] = Query(None, alias="range"),
    container: ServiceContainer = Depends(get_container),
) -> JobRun:
    return _respond(await container.scheduler.generate_drafts(range_))


@router.post("/sync-claims", response_model=JobRun)
async def trigger_sync_claims(
    container: ServiceContainer = Depends(get_container),
) -> JobRun:
    return _respond(await container.scheduler.sync_claim_statuses())


@router.post("/cycle", response_model=JobRun)
async def trigger_cycle(
    mode: IngestionMode = Query(IngestionMode.INCREMENTAL),
    container: ServiceContainer = Depends(get_container),
) -> JobRun:
    return _respond(await container.scheduler.run_cycle(mode))


@router.get("/runs", response_model=dict[str, JobRun])
async def last_runs(
    container: ServiceContainer = Depends(get_container),
) -> dict[str, JobRun]:
    """Most recent completed or failed run per job."""
    return container.scheduler.last_runs
