"""
Submission Collaborator Gateway.

The submission collaborator files claims with the insurer portal and
reports status changes back. Reported statuses are validated by the
claim lifecycle before anything is persisted.
"""

from abc import abstractmethod

from src.gateways.base import CollaboratorGateway
from src.schemas.claim import Claim, ClaimStatusReport, SubmissionReceipt
from src.utils.errors import UpstreamError
from src.utils.retry import with_retry


class SubmissionGateway(CollaboratorGateway):
    """Gateway to the insurer submission collaborator."""

    collaborator_name = "submission"

    async def submit(self, claim: Claim) -> SubmissionReceipt:
        return await self.call("submit", lambda: self._submit(claim))

    @with_retry(max_attempts=3, delay=1.0, exceptions=(UpstreamError,))
    async def fetch_status_reports(self) -> list[ClaimStatusReport]:
        """Status changes since the last fetch; transient failures are retried."""
        return await self.call("fetch_status_reports", self._fetch_status_reports)

    @abstractmethod
    async def _submit(self, claim: Claim) -> SubmissionReceipt:
        """File a claim with the insurer."""

    @abstractmethod
    async def _fetch_status_reports(self) -> list[ClaimStatusReport]:
        """Status changes observed since the last fetch."""


class NullSubmissionGateway(SubmissionGateway):
    """Used when no submission collaborator is configured."""

    async def _submit(self, claim: Claim) -> SubmissionReceipt:
        raise UpstreamError(
            "No submission collaborator configured", collaborator=self.collaborator_name
        )

    async def _fetch_status_reports(self) -> list[ClaimStatusReport]:
        return []
