"""
Reconciliation Scheduler.

Runs ingestion, matching, draft generation and claim status sync, either
on demand (API triggers) or periodically in a background task.

Each job owns a RunGuard. A second invocation of a job that is already
running is skipped and logged rather than queued. Every job catches its
own failures, logs them and releases its guard, so one failing unit never
stops the process or the rest of a cycle.
"""

import asyncio
import threading
import time
import uuid
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, Optional

from pydantic import BaseModel, Field

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import DraftClaimRange, IngestionMode
from src.gateways.ingestion import IngestionGateway
from src.gateways.submission import SubmissionGateway
from src.schemas.common import utcnow
from src.services.assignment_engine import AssignmentEngine
from src.services.claim_state_machine import ClaimLifecycleService
from src.services.documents import DocumentService
from src.services.draft_claim_generator import DraftClaimGenerator
from src.utils.errors import UpstreamError
from src.utils.logging import get_logger, job_context

logger = get_logger(__name__)


class RunGuard:
    """
    Exclusive "job is running" flag.

    ``try_acquire`` returns a token or None when the job is already held.
    A hold older than ``stale_after_seconds`` is treated as abandoned and
    can be taken over.
    """

    def __init__(
        self,
        name: str,
        stale_after_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.stale_after_seconds = stale_after_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._acquired_at: Optional[float] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._token is not None and not self._is_stale()

    def _is_stale(self) -> bool:
        if self.stale_after_seconds is None or self._acquired_at is None:
            return False
        return self._clock() - self._acquired_at > self.stale_after_seconds

    def try_acquire(self) -> Optional[str]:
        with self._lock:
            if self._token is not None:
                if not self._is_stale():
                    return None
                logger.warning(f"Run guard {self.name} held past its timeout; taking over")
            self._token = uuid.uuid4().hex
            self._acquired_at = self._clock()
            return self._token

    def release(self, token: str) -> bool:
        """Release the guard; a token from a taken-over run is ignored."""
        with self._lock:
            if self._token != token:
                return False
            self._token = None
            self._acquired_at = None
            return True

    @contextmanager
    def hold(self) -> Iterator[Optional[str]]:
        """Scoped acquisition; yields None when the guard is busy."""
        token = self.try_acquire()
        try:
            yield token
        finally:
            if token is not None:
                self.release(token)


class JobStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class JobRun(BaseModel):
    """Outcome of one scheduler job invocation."""

    job: str
    status: JobStatus
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    result: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


class ReconciliationScheduler:
    """Guarded jobs plus the periodic background loop."""

    JOBS = (
        "scan_documents",
        "scan_calendar",
        "run_matching",
        "generate_drafts",
        "sync_claims",
        "cycle",
    )

    def __init__(
        self,
        documents: DocumentService,
        ingestion: IngestionGateway,
        assignments: AssignmentEngine,
        generator: DraftClaimGenerator,
        lifecycle: ClaimLifecycleService,
        submission: Optional[SubmissionGateway] = None,
        settings: Optional[ReconcilerSettings] = None,
    ):
        self.documents = documents
        self.ingestion = ingestion
        self.assignments = assignments
        self.generator = generator
        self.lifecycle = lifecycle
        self.submission = submission
        self.settings = settings or get_settings()

        self.guards = {
            job: RunGuard(job, self.settings.SCHEDULER_RUN_TIMEOUT_SECONDS) for job in self.JOBS
        }
        self.last_runs: dict[str, JobRun] = {}
        self._last_full_scan: Optional[float] = None
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def _run(self, job: str, work: Callable[[], Awaitable[dict[str, Any]]]) -> JobRun:
        with job_context(job), self.guards[job].hold() as token:
            if token is None:
                logger.info(f"Skipping {job}: a previous run is still active")
                return JobRun(job=job, status=JobStatus.SKIPPED, finished_at=utcnow())

            run = JobRun(job=job, status=JobStatus.COMPLETED)
            try:
                run.result = await work()
            except UpstreamError as e:
                run.status = JobStatus.FAILED
                run.error = e.detail
                logger.error(f"{job} failed: {e.detail}")
            except Exception as e:
                run.status = JobStatus.FAILED
                run.error = str(e)
                logger.exception(f"{job} failed: {e}")
            run.finished_at = utcnow()
            self.last_runs[job] = run
            return run

    # =========================================================================
    # Jobs
    # =========================================================================

    async def scan_documents(self, mode: IngestionMode = IngestionMode.INCREMENTAL) -> JobRun:
        async def work() -> dict[str, Any]:
            result = await self.ingestion.scan_documents(mode)
            return await self.documents.ingest(result)

        return await self._run("scan_documents", work)

    async def scan_calendar(self) -> JobRun:
        async def work() -> dict[str, Any]:
            result = await self.ingestion.scan_calendar()
            return await self.documents.ingest(result)

        return await self._run("scan_calendar", work)

    async def run_matching(self) -> JobRun:
        async def work() -> dict[str, Any]:
            stats = await self.assignments.match_all_documents()
            return stats.model_dump()

        return await self._run("run_matching", work)

    async def generate_drafts(
        self,
        range_: Optional[DraftClaimRange] = None,
        as_of: Optional[datetime] = None,
    ) -> JobRun:
        async def work() -> dict[str, Any]:
            drafts = await self.generator.generate(
                range_ or self.settings.SCHEDULER_DRAFT_RANGE, as_of
            )
            return {"created": len(drafts), "draft_ids": [draft.id for draft in drafts]}

        return await self._run("generate_drafts", work)

    async def sync_claim_statuses(self) -> JobRun:
        async def work() -> dict[str, Any]:
            if self.submission is None:
                return {"applied": 0, "skipped": 0}
            reports = await self.submission.fetch_status_reports()
            return await self.lifecycle.apply_status_reports(reports)

        return await self._run("sync_claims", work)

    async def run_cycle(self, mode: IngestionMode = IngestionMode.INCREMENTAL) -> JobRun:
        """Scan, match, generate drafts and sync statuses; each step fails independently."""

        async def work() -> dict[str, Any]:
            steps = [
                await self.scan_documents(mode),
                await self.scan_calendar(),
                await self.run_matching(),
                await self.generate_drafts(),
                await self.sync_claim_statuses(),
            ]
            return {step.job: step.status.value for step in steps}

        return await self._run("cycle", work)

    # =========================================================================
    # Background Loop
    # =========================================================================

    def _next_mode(self) -> IngestionMode:
        now = time.monotonic()
        if (
            self._last_full_scan is None
            or now - self._last_full_scan >= self.settings.SCHEDULER_FULL_SCAN_INTERVAL_SECONDS
        ):
            self._last_full_scan = now
            return IngestionMode.FULL
        return IngestionMode.INCREMENTAL

    async def _wait(self, seconds: float) -> bool:
        """Sleep unless stopped first; True when a stop was requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _loop(self) -> None:
        logger.info("Reconciliation scheduler started")
        if await self._wait(self.settings.SCHEDULER_STARTUP_DELAY_SECONDS):
            return

        while not self._stop_event.is_set():
            run = await self.run_cycle(self._next_mode())
            logger.info(f"Scheduled cycle {run.status.value}: {run.result}")
            if await self._wait(self.settings.SCHEDULER_INCREMENTAL_INTERVAL_SECONDS):
                break

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the current cycle to finish."""
        if self._task is None:
            return
        self._stop_event.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Reconciliation scheduler stopped")
