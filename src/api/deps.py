"""
FastAPI Dependencies
Service lookup for route handlers.
Source: https://fastapi.tiangolo.com/tutorial/dependencies/
"""

from fastapi import HTTPException, Request, status

from src.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """
    Service container attached to the app at startup.

    Tests override this dependency to inject a container built on
    in-memory storage and fake collaborators.
    """
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services are not initialized",
        )
    return container


def not_found(kind: str, entity_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{kind} not found: {entity_id}",
    )
