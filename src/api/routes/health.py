"""
Health Check Routes
Service health monitoring endpoints
Source: https://microservices.io/patterns/observability/health-check-api.html
"""

from typing import Any

from fastapi import APIRouter, Depends

from src.api.deps import get_container
from src.core.enums import StorageBackend
from src.db.connection import check_db_connection
from src.services.container import ServiceContainer
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "claim-reconciler-api",
    }


@router.get("/health/detailed")
async def detailed_health_check(
    container: ServiceContainer = Depends(get_container),
) -> dict[str, Any]:
    """Health of storage, scheduler jobs and collaborators."""
    storage_healthy = True
    if container.storage.backend == StorageBackend.SQL:
        storage_healthy = await check_db_connection()

    collaborators = {
        gateway.collaborator_name: {
            "healthy": gateway.health.is_healthy,
            "last_error": gateway.health.last_error,
            "request_count": gateway.health.request_count,
        }
        for gateway in (container.ingestion, container.submission)
    }

    return {
        "status": "healthy" if storage_healthy else "unhealthy",
        "service": "claim-reconciler-api",
        "checks": {
            "storage": {
                "backend": container.storage.backend.value,
                "status": "healthy" if storage_healthy else "unhealthy",
            },
            "scheduler": {
                "running": container.scheduler.is_running,
                "jobs": {
                    name: guard.is_running for name, guard in container.scheduler.guards.items()
                },
            },
            "collaborators": collaborators,
        },
    }
