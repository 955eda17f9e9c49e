"""
FastAPI Main Application
Entry point for the reconciliation API server
Source: https://fastapi.tiangolo.com/
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.api.routes import assignments, claims, documents, draft_claims, health, triggers
from src.core.config import get_settings
from src.services.container import ServiceContainer
from src.utils.errors import ReconcilerError, ValidationError
from src.utils.logging import get_logger, setup_logging

settings = get_settings()

setup_logging(
    level=settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    json_logs=settings.JSON_LOGS or settings.is_production,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
    """Build services on startup, stop the scheduler and storage on shutdown."""
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")

    owns_container = getattr(app.state, "container", None) is None
    if owns_container:
        app.state.container = await ServiceContainer.create(settings)
    container: ServiceContainer = app.state.container
    logger.info(f"Storage backend: {container.storage.backend.value}")

    if settings.SCHEDULER_ENABLED:
        container.scheduler.start()

    yield

    logger.info("Shutting down application")
    if owns_container:
        await container.close()
        app.state.container = None
    else:
        await container.scheduler.stop()


async def reconciler_error_handler(request: Request, exc: ReconcilerError) -> JSONResponse:
    content: dict[str, Any] = {"detail": exc.detail}
    if isinstance(exc, ValidationError) and exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        container: Pre-built services; when omitted they are created on startup
    """
    app = FastAPI(
        title="Claim Reconciler API",
        description="Document-claim reconciliation and draft claim review",
        version="1.0.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_exception_handler(ReconcilerError, reconciler_error_handler)

    app.include_router(health.router)
    app.include_router(documents.router)
    app.include_router(assignments.router)
    app.include_router(draft_claims.router)
    app.include_router(claims.router)
    app.include_router(triggers.router)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Claim Reconciler API",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
            "docs": "/docs" if not settings.is_production else "disabled",
        }

    return app


app = create_app()
