"""
Ingestion Collaborator Gateway.

The ingestion collaborator reads mailboxes and calendars, runs OCR and
returns evidence documents. This core stores what it returns; it never
talks to the mail or calendar source itself.
"""

from abc import abstractmethod

from pydantic import BaseModel, Field

from src.core.enums import IngestionMode
from src.gateways.base import CollaboratorGateway
from src.schemas.document import MedicalDocumentCreate


class ScanResult(BaseModel):
    """Documents produced by one ingestion scan."""

    mode: IngestionMode
    documents: list[MedicalDocumentCreate] = Field(default_factory=list)
    skipped: int = Field(default=0, ge=0, description="Units the collaborator could not read")
    errors: list[str] = Field(default_factory=list)


class IngestionGateway(CollaboratorGateway):
    """Gateway to the document and calendar ingestion collaborator."""

    collaborator_name = "ingestion"

    async def scan_documents(self, mode: IngestionMode = IngestionMode.INCREMENTAL) -> ScanResult:
        return await self.call("scan_documents", lambda: self._scan_documents(mode))

    async def scan_calendar(self) -> ScanResult:
        return await self.call("scan_calendar", self._scan_calendar)

    @abstractmethod
    async def _scan_documents(self, mode: IngestionMode) -> ScanResult:
        """Scan mail attachments."""

    @abstractmethod
    async def _scan_calendar(self) -> ScanResult:
        """Scan calendar events."""


class NullIngestionGateway(IngestionGateway):
    """Used when no ingestion collaborator is configured; every scan is empty."""

    async def _scan_documents(self, mode: IngestionMode) -> ScanResult:
        return ScanResult(mode=mode)

    async def _scan_calendar(self) -> ScanResult:
        return ScanResult(mode=IngestionMode.FULL)
