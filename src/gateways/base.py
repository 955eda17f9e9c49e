"""
Base Collaborator Gateway.

Ingestion and submission collaborators are external systems. Every call
goes through ``CollaboratorGateway.call`` which applies the configured
timeout, tracks health and turns any failure into ``UpstreamError`` so
callers only handle one error type.
"""

import asyncio
import time
from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from src.schemas.common import utcnow
from src.utils.errors import ReconcilerError, UpstreamError
from src.utils.logging import get_logger

logger = get_logger(__name__)

TResponse = TypeVar("TResponse")


@dataclass
class CollaboratorHealth:
    """Rolling health of a collaborator."""

    request_count: int = 0
    error_count: int = 0
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    last_success_at: Optional[datetime] = None
    avg_latency_ms: float = 0.0

    @property
    def is_healthy(self) -> bool:
        return self.consecutive_failures == 0

    def record_success(self, latency_ms: float) -> None:
        self.request_count += 1
        self.consecutive_failures = 0
        self.last_success_at = utcnow()
        if self.request_count == 1:
            self.avg_latency_ms = latency_ms
        else:
            self.avg_latency_ms = self.avg_latency_ms * 0.9 + latency_ms * 0.1

    def record_failure(self, error: str) -> None:
        self.request_count += 1
        self.error_count += 1
        self.consecutive_failures += 1
        self.last_error = error


class CollaboratorGateway(ABC):
    """Base class for external collaborator gateways."""

    collaborator_name: str = "collaborator"

    def __init__(self, timeout_seconds: float = 300.0):
        self.timeout_seconds = timeout_seconds
        self.health = CollaboratorHealth()

    async def call(
        self,
        operation: str,
        request: Callable[[], Awaitable[TResponse]],
    ) -> TResponse:
        """
        Run one collaborator request under the gateway timeout.

        Raises:
            UpstreamError: timeout or any collaborator failure
        """
        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(request(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            error_msg = f"{self.collaborator_name}.{operation} timed out after {self.timeout_seconds}s"
            self.health.record_failure(error_msg)
            logger.error(error_msg)
            raise UpstreamError(error_msg, collaborator=self.collaborator_name, original_error=e) from e
        except UpstreamError as e:
            self.health.record_failure(e.detail)
            logger.error(f"{self.collaborator_name}.{operation} failed: {e.detail}")
            raise
        except ReconcilerError:
            raise
        except Exception as e:
            error_msg = f"{self.collaborator_name}.{operation} failed: {e}"
            self.health.record_failure(str(e))
            logger.error(error_msg)
            raise UpstreamError(error_msg, collaborator=self.collaborator_name, original_error=e) from e

        latency = (time.perf_counter() - start_time) * 1000
        self.health.record_success(latency)
        logger.debug(f"{self.collaborator_name}.{operation} succeeded in {latency:.1f}ms")
        return response
