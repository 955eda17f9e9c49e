"""
Custom Exceptions
Reconciliation error taxonomy and the HTTP status each maps to.
"""

from typing import Optional

from fastapi import status


class ReconcilerError(Exception):
    """Base exception for reconciliation errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "Reconciliation error"):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ReconcilerError):
    """Raised when an operation violates a business rule or transition table."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, detail: str = "Validation error", errors: Optional[list[str]] = None):
        super().__init__(detail)
        self.errors = errors or []


class NotFoundError(ReconcilerError):
    """Raised when a referenced document, claim, assignment or draft is missing."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail)


class ConflictError(ReconcilerError):
    """Raised when a record changed between read and write."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, detail: str = "Resource conflict"):
        super().__init__(detail)


class UpstreamError(ReconcilerError):
    """Raised when an ingestion or submission collaborator fails."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        detail: str = "Upstream collaborator failed",
        collaborator: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(detail)
        self.collaborator = collaborator
        self.original_error = original_error
