"""
Reconciliation Configuration
Settings for matching thresholds, draft generation and scheduling.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from functools import lru_cache
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from src.core.enums import DocumentSourceType, DraftClaimRange, StorageBackend


class MatchThresholds(BaseModel):
    """Named scoring constants used by the match scorer."""

    model_config = ConfigDict(frozen=True)

    exact_amount_tolerance: float = 0.01
    approximate_amount_tolerance: float = 0.10
    date_proximity_days: int = 30
    date_mismatch_penalty_threshold: int = 60
    max_date_mismatch_days: int = 90
    date_mismatch_penalty: float = 40
    minimum_candidate_score: float = 50
    exact_amount_score: float = 80
    approximate_amount_score: float = 60
    date_proximity_bonus: float = 15
    provider_match_bonus: float = 10

    @property
    def missing_date_penalty(self) -> float:
        """Penalty applied when a document carries no date at all."""
        return self.date_mismatch_penalty / 2


class ReconcilerSettings(BaseSettings):
    """
    Claim reconciliation settings.

    All values can be overridden with RECONCILER_-prefixed environment
    variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="RECONCILER_",
    )

    # =========================================================================
    # Application
    # =========================================================================
    ENVIRONMENT: str = Field(default="development", description="development, testing, production")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    JSON_LOGS: bool = Field(default=False, description="Serialize log records as JSON")
    LOG_FILE: Optional[str] = Field(default=None, description="Rotated log file path")

    # =========================================================================
    # Storage
    # =========================================================================
    STORAGE_BACKEND: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Repository backing: memory or sql",
    )
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/reconciler.db",
        description="SQLAlchemy async database URL (sql backend only)",
    )
    DB_ECHO: bool = Field(default=False, description="Log emitted SQL")

    # =========================================================================
    # Match Scoring
    # =========================================================================
    MATCH_EXACT_AMOUNT_TOLERANCE: float = Field(default=0.01, ge=0.0, le=1.0)
    MATCH_APPROXIMATE_AMOUNT_TOLERANCE: float = Field(default=0.10, ge=0.0, le=1.0)
    MATCH_DATE_PROXIMITY_DAYS: int = Field(default=30, ge=0)
    MATCH_DATE_MISMATCH_PENALTY_THRESHOLD: int = Field(default=60, ge=0)
    MATCH_MAX_DATE_MISMATCH_DAYS: int = Field(default=90, ge=0)
    MATCH_DATE_MISMATCH_PENALTY: float = Field(default=40, ge=0)
    MATCH_MINIMUM_CANDIDATE_SCORE: float = Field(default=50, ge=0, le=100)
    MATCH_EXACT_AMOUNT_SCORE: float = Field(default=80, ge=0, le=100)
    MATCH_APPROXIMATE_AMOUNT_SCORE: float = Field(default=60, ge=0, le=100)
    MATCH_DATE_PROXIMITY_BONUS: float = Field(default=15, ge=0)
    MATCH_PROVIDER_MATCH_BONUS: float = Field(default=10, ge=0)

    MAX_CANDIDATES_PER_DOCUMENT: int = Field(
        default=5, ge=1, description="Top-scoring candidates kept per document"
    )
    HIGH_CONFIDENCE_SCORE: float = Field(
        default=70, ge=0, le=100, description="Default cut-off for high-confidence candidates"
    )
    ALLOW_MULTIPLE_CONFIRMED: bool = Field(
        default=False,
        description="Allow a document to hold more than one confirmed assignment",
    )

    # =========================================================================
    # Payments and Draft Claims
    # =========================================================================
    DEFAULT_CURRENCY: str = Field(default="EUR", min_length=3, max_length=3)
    EMPTY_PAYMENT_CONTEXT: str = Field(
        default="Manual promotion - no payment signal detected",
        description="Context recorded on placeholder payments",
    )
    DRAFT_SOURCE_TYPES: Annotated[list[DocumentSourceType], NoDecode] = Field(
        default=[DocumentSourceType.ATTACHMENT],
        description="Document source types eligible for automatic draft generation",
    )
    PROOF_MAX_DOCUMENTS: int = Field(default=3, ge=0)
    PROOF_DATE_WINDOW_DAYS: int = Field(default=30, ge=0)
    PROOF_AMOUNT_EPSILON: float = Field(default=0.01, gt=0)
    CONFLICT_RETRY_ATTEMPTS: int = Field(
        default=3, ge=1, description="Attempts for read-modify-write merges"
    )

    # =========================================================================
    # Scheduler and Collaborators
    # =========================================================================
    SCHEDULER_ENABLED: bool = Field(default=False, description="Start the background scheduler")
    SCHEDULER_STARTUP_DELAY_SECONDS: float = Field(default=5.0, ge=0)
    SCHEDULER_INCREMENTAL_INTERVAL_SECONDS: float = Field(default=15 * 60, gt=0)
    SCHEDULER_FULL_SCAN_INTERVAL_SECONDS: float = Field(default=24 * 60 * 60, gt=0)
    SCHEDULER_RUN_TIMEOUT_SECONDS: float = Field(
        default=60 * 60, gt=0, description="A run guard held longer than this is considered stale"
    )
    SCHEDULER_DRAFT_RANGE: DraftClaimRange = Field(default=DraftClaimRange.LAST_MONTH)
    COLLABORATOR_TIMEOUT_SECONDS: float = Field(default=300.0, gt=0)

    @field_validator("DRAFT_SOURCE_TYPES", mode="before")
    @classmethod
    def parse_source_types(cls, v: Any) -> Any:
        """Allow comma-separated source types from env strings."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def match_thresholds(self) -> MatchThresholds:
        """Scoring constants as an immutable value object."""
        return MatchThresholds(
            exact_amount_tolerance=self.MATCH_EXACT_AMOUNT_TOLERANCE,
            approximate_amount_tolerance=self.MATCH_APPROXIMATE_AMOUNT_TOLERANCE,
            date_proximity_days=self.MATCH_DATE_PROXIMITY_DAYS,
            date_mismatch_penalty_threshold=self.MATCH_DATE_MISMATCH_PENALTY_THRESHOLD,
            max_date_mismatch_days=self.MATCH_MAX_DATE_MISMATCH_DAYS,
            date_mismatch_penalty=self.MATCH_DATE_MISMATCH_PENALTY,
            minimum_candidate_score=self.MATCH_MINIMUM_CANDIDATE_SCORE,
            exact_amount_score=self.MATCH_EXACT_AMOUNT_SCORE,
            approximate_amount_score=self.MATCH_APPROXIMATE_AMOUNT_SCORE,
            date_proximity_bonus=self.MATCH_DATE_PROXIMITY_BONUS,
            provider_match_bonus=self.MATCH_PROVIDER_MATCH_BONUS,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> ReconcilerSettings:
    """Get cached settings instance."""
    return ReconcilerSettings()
