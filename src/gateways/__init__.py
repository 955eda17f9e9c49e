"""
Collaborator gateways for ingestion and submission.
"""

from src.gateways.base import CollaboratorGateway, CollaboratorHealth
from src.gateways.ingestion import IngestionGateway, NullIngestionGateway, ScanResult
from src.gateways.submission import NullSubmissionGateway, SubmissionGateway

__all__ = [
    "CollaboratorGateway",
    "CollaboratorHealth",
    "IngestionGateway",
    "NullIngestionGateway",
    "ScanResult",
    "SubmissionGateway",
    "NullSubmissionGateway",
]
