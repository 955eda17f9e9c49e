"""
Unit tests for collaborator gateways and retry helpers.
"""

import asyncio

import pytest

from src.core.enums import IngestionMode
from src.gateways.ingestion import IngestionGateway, NullIngestionGateway, ScanResult
from src.gateways.submission import NullSubmissionGateway
from src.utils.errors import ConflictError, UpstreamError
from src.utils.retry import retry_on_conflict, with_retry


class SlowIngestionGateway(IngestionGateway):
    async def _scan_documents(self, mode):
        return ScanResult(mode=mode)

    async def _scan_calendar(self):
        await asyncio.sleep(1)
        return ScanResult(mode=IngestionMode.FULL)


@pytest.mark.unit
class TestCollaboratorGateway:
    """Tests for the gateway call wrapper."""

    @pytest.mark.asyncio
    async def test_success_updates_health(self, ingestion):
        gateway = ingestion

        result = await gateway.scan_documents(IngestionMode.FULL)

        assert result.mode == IngestionMode.FULL
        assert gateway.health.request_count == 1
        assert gateway.health.is_healthy
        assert gateway.health.last_success_at is not None

    @pytest.mark.asyncio
    async def test_failure_becomes_upstream_error(self, ingestion):
        gateway = ingestion
        gateway.error = ConnectionError("refused")

        with pytest.raises(UpstreamError) as exc_info:
            await gateway.scan_documents()

        assert exc_info.value.status_code == 502
        assert "refused" in exc_info.value.detail
        assert gateway.health.consecutive_failures == 1
        assert not gateway.health.is_healthy

    @pytest.mark.asyncio
    async def test_timeout(self):
        gateway = SlowIngestionGateway(timeout_seconds=0.01)

        with pytest.raises(UpstreamError, match="timed out"):
            await gateway.scan_calendar()

        assert gateway.health.error_count == 1

    @pytest.mark.asyncio
    async def test_recovery_resets_consecutive_failures(self, ingestion):
        gateway = ingestion
        gateway.error = ConnectionError("refused")
        with pytest.raises(UpstreamError):
            await gateway.scan_documents()

        gateway.error = None
        await gateway.scan_documents()

        assert gateway.health.is_healthy
        assert gateway.health.error_count == 1

    @pytest.mark.asyncio
    async def test_null_gateways(self):
        scan = await NullIngestionGateway().scan_documents(IngestionMode.FULL)
        reports = await NullSubmissionGateway().fetch_status_reports()

        assert scan.documents == []
        assert reports == []


@pytest.mark.unit
class TestRetry:
    """Tests for retry helpers."""

    @pytest.mark.asyncio
    async def test_retry_on_conflict_reruns_operation(self):
        calls = []

        async def operation():
            calls.append(1)
            if len(calls) < 3:
                raise ConflictError("stale")
            return "done"

        assert await retry_on_conflict(operation, attempts=3) == "done"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_retry_on_conflict_gives_up(self):
        async def operation():
            raise ConflictError("stale")

        with pytest.raises(ConflictError):
            await retry_on_conflict(operation, attempts=2)

    @pytest.mark.asyncio
    async def test_with_retry_backoff(self):
        calls = []

        @with_retry(max_attempts=3, delay=0, exceptions=(UpstreamError,))
        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise UpstreamError("blip")
            return len(calls)

        assert await flaky() == 2
