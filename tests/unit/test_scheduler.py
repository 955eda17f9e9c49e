"""
Unit tests for run guards and the reconciliation scheduler.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from src.core.enums import DocumentSourceType, DraftClaimRange, IngestionMode
from src.schemas.document import DetectedAmount, MedicalDocumentCreate
from src.services.scheduler import JobStatus, RunGuard


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _bill(email_id: str, amount: str = "120") -> MedicalDocumentCreate:
    return MedicalDocumentCreate(
        source_type=DocumentSourceType.ATTACHMENT,
        email_id=email_id,
        filename=f"{email_id}.pdf",
        detected_amounts=[
            DetectedAmount(value=Decimal(amount), currency="EUR", raw_text=f"EUR {amount}", confidence=90)
        ],
        date=datetime(2026, 1, 15, 9, tzinfo=timezone.utc),
    )


@pytest.mark.unit
class TestRunGuard:
    """Tests for RunGuard."""

    def test_second_acquire_is_refused(self):
        guard = RunGuard("scan")

        token = guard.try_acquire()

        assert token is not None
        assert guard.is_running
        assert guard.try_acquire() is None

    def test_release_requires_current_token(self):
        guard = RunGuard("scan")
        token = guard.try_acquire()

        assert not guard.release("other")
        assert guard.release(token)
        assert not guard.is_running
        assert guard.try_acquire() is not None

    def test_stale_hold_is_taken_over(self):
        clock = FakeClock()
        guard = RunGuard("scan", stale_after_seconds=60, clock=clock)
        first = guard.try_acquire()

        clock.now = 30
        assert guard.try_acquire() is None

        clock.now = 61
        assert not guard.is_running
        second = guard.try_acquire()

        assert second is not None
        assert not guard.release(first)
        assert guard.is_running

    def test_hold_releases_on_exit(self):
        guard = RunGuard("scan")

        with guard.hold() as token:
            assert token is not None
            with guard.hold() as nested:
                assert nested is None
            assert guard.is_running

        assert not guard.is_running

    def test_hold_releases_on_error(self):
        guard = RunGuard("scan")

        with pytest.raises(RuntimeError):
            with guard.hold():
                raise RuntimeError("boom")

        assert not guard.is_running


@pytest.mark.unit
class TestSchedulerJobs:
    """Guarded scheduler jobs."""

    @pytest.mark.asyncio
    async def test_scan_documents_ingests(self, container, ingestion):
        ingestion.documents = [_bill("msg-1"), _bill("msg-2")]

        run = await container.scheduler.scan_documents(IngestionMode.FULL)

        assert run.status == JobStatus.COMPLETED
        assert run.result == {"created": 2, "updated": 0, "skipped": 0}
        assert ingestion.modes == [IngestionMode.FULL]
        assert container.scheduler.last_runs["scan_documents"] is run
        assert not container.scheduler.guards["scan_documents"].is_running

    @pytest.mark.asyncio
    async def test_held_guard_skips_job(self, container):
        scheduler = container.scheduler
        token = scheduler.guards["run_matching"].try_acquire()

        run = await scheduler.run_matching()

        assert run.status == JobStatus.SKIPPED
        assert "run_matching" not in scheduler.last_runs
        scheduler.guards["run_matching"].release(token)
        assert (await scheduler.run_matching()).status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_collaborator_failure_marks_run_failed(self, container, ingestion):
        ingestion.error = ConnectionError("mailbox unreachable")

        run = await container.scheduler.scan_documents()

        assert run.status == JobStatus.FAILED
        assert "mailbox unreachable" in run.error
        assert not container.scheduler.guards["scan_documents"].is_running
        assert not ingestion.health.is_healthy

    @pytest.mark.asyncio
    async def test_generate_drafts(self, container, ingestion):
        ingestion.documents = [_bill("msg-1")]
        await container.scheduler.scan_documents()

        run = await container.scheduler.generate_drafts(
            DraftClaimRange.LAST_WEEK, as_of=datetime(2026, 1, 16, tzinfo=timezone.utc)
        )

        assert run.status == JobStatus.COMPLETED
        assert run.result["created"] == 1
        assert len(run.result["draft_ids"]) == 1

    @pytest.mark.asyncio
    async def test_cycle_continues_after_failed_step(self, container, ingestion):
        ingestion.error = ConnectionError("offline")

        run = await container.scheduler.run_cycle()

        assert run.status == JobStatus.COMPLETED
        assert run.result == {
            "scan_documents": "failed",
            "scan_calendar": "failed",
            "run_matching": "completed",
            "generate_drafts": "completed",
            "sync_claims": "completed",
        }


@pytest.mark.unit
class TestSchedulerLoop:
    """Background loop lifecycle."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, container, ingestion):
        scheduler = container.scheduler
        scheduler.settings.SCHEDULER_STARTUP_DELAY_SECONDS = 0
        scheduler.settings.SCHEDULER_INCREMENTAL_INTERVAL_SECONDS = 3600

        scheduler.start()
        assert scheduler.is_running
        for _ in range(50):
            if "cycle" in scheduler.last_runs:
                break
            await asyncio.sleep(0.01)

        await scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.last_runs["cycle"].status == JobStatus.COMPLETED
        assert ingestion.modes == [IngestionMode.FULL]

    @pytest.mark.asyncio
    async def test_stop_without_start(self, container):
        await container.scheduler.stop()
        assert not container.scheduler.is_running
