"""
Claim Status State Machine.

Provides:
- Valid status transitions for locally submitted claims
- Transition validation for user actions and collaborator reports
- Claim lifecycle operations (create from draft, submit, apply reports)

State Diagram:
    DRAFT -> READY
    READY -> SUBMITTED | DRAFT
    SUBMITTED -> PROCESSING
    PROCESSING -> APPROVED | REJECTED
    APPROVED -> PAID

REJECTED and PAID are terminal. READY -> DRAFT is the only backward edge.
"""

from dataclasses import dataclass
from typing import Optional

from src.core.config import ReconcilerSettings, get_settings
from src.core.enums import CLAIM_STATUS_DISPLAY_NAMES, ClaimStatus, DraftClaimStatus
from src.db import Storage
from src.gateways.submission import SubmissionGateway
from src.schemas.claim import (
    Claim,
    ClaimCreate,
    ClaimFromDraftInput,
    ClaimStatusChange,
    ClaimStatusReport,
    ClaimTransitionRequest,
    ClaimUpdate,
)
from src.schemas.common import utcnow
from src.utils.errors import ConflictError, NotFoundError, ValidationError
from src.utils.logging import get_logger
from src.utils.retry import retry_on_conflict

logger = get_logger(__name__)


@dataclass(frozen=True)
class Transition:
    """Represents a valid state transition."""

    from_status: ClaimStatus
    to_status: ClaimStatus
    requires_reason: bool = False


@dataclass
class TransitionResult:
    """Result of a transition check."""

    success: bool
    from_status: ClaimStatus
    to_status: Optional[ClaimStatus] = None
    error: Optional[str] = None
    transition: Optional[Transition] = None


# =============================================================================
# Valid Transitions Definition
# =============================================================================


VALID_TRANSITIONS: list[Transition] = [
    Transition(ClaimStatus.DRAFT, ClaimStatus.READY),
    Transition(ClaimStatus.READY, ClaimStatus.SUBMITTED),
    Transition(ClaimStatus.READY, ClaimStatus.DRAFT),
    Transition(ClaimStatus.SUBMITTED, ClaimStatus.PROCESSING),
    Transition(ClaimStatus.PROCESSING, ClaimStatus.APPROVED),
    Transition(ClaimStatus.PROCESSING, ClaimStatus.REJECTED, requires_reason=True),
    Transition(ClaimStatus.APPROVED, ClaimStatus.PAID),
]

EDITABLE_STATUSES = (ClaimStatus.DRAFT, ClaimStatus.READY)


# =============================================================================
# State Machine
# =============================================================================


class ClaimStateMachine:
    """Validates claim status transitions against the transition table."""

    def __init__(self, transitions: Optional[list[Transition]] = None):
        self._transitions: dict[tuple[ClaimStatus, ClaimStatus], Transition] = {}
        self._from_status_map: dict[ClaimStatus, list[Transition]] = {}

        for transition in transitions or VALID_TRANSITIONS:
            self._transitions[(transition.from_status, transition.to_status)] = transition
            self._from_status_map.setdefault(transition.from_status, []).append(transition)

    def get_valid_transitions(self, status: ClaimStatus) -> list[Transition]:
        return self._from_status_map.get(status, [])

    def get_next_statuses(self, status: ClaimStatus) -> list[ClaimStatus]:
        return [t.to_status for t in self.get_valid_transitions(status)]

    def can_transition(self, from_status: ClaimStatus, to_status: ClaimStatus) -> bool:
        return (from_status, to_status) in self._transitions

    def validate_transition(
        self,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
        reason: Optional[str] = None,
        require_reason: bool = True,
    ) -> TransitionResult:
        """
        Validate a transition attempt.

        Args:
            require_reason: Enforce reasons on transitions that declare one.
                Insurer-reported changes pass False; the insurer may omit it.

        Returns:
            TransitionResult indicating success/failure
        """
        transition = self._transitions.get((from_status, to_status))
        if transition is None:
            return TransitionResult(
                success=False,
                from_status=from_status,
                error=f"Invalid transition: {from_status.value} -> {to_status.value}",
            )

        if require_reason and transition.requires_reason and not reason:
            return TransitionResult(
                success=False,
                from_status=from_status,
                error="Reason is required for this transition",
            )

        return TransitionResult(
            success=True,
            from_status=from_status,
            to_status=to_status,
            transition=transition,
        )


# =============================================================================
# Status Helpers
# =============================================================================


def is_terminal_status(status: ClaimStatus) -> bool:
    """Check if status is terminal (no further transitions)."""
    return not get_claim_state_machine().get_next_statuses(status)


def is_in_flight_status(status: ClaimStatus) -> bool:
    """Check if the insurer is working on the claim."""
    return status in (ClaimStatus.SUBMITTED, ClaimStatus.PROCESSING)


def get_status_display_name(status: ClaimStatus) -> str:
    return CLAIM_STATUS_DISPLAY_NAMES[status]


_state_machine: Optional[ClaimStateMachine] = None


def get_claim_state_machine() -> ClaimStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = ClaimStateMachine()
    return _state_machine


# =============================================================================
# Lifecycle Service
# =============================================================================


def _apply_status(
    claim: Claim,
    to_status: ClaimStatus,
    reason: Optional[str],
    changed_by: Optional[str],
) -> None:
    now = utcnow()
    claim.status_history = [
        *claim.status_history,
        ClaimStatusChange(
            from_status=claim.status,
            to_status=to_status,
            changed_at=now,
            changed_by=changed_by,
            reason=reason,
        ),
    ]
    claim.status = to_status
    claim.updated_at = now
    if to_status == ClaimStatus.SUBMITTED:
        claim.submitted_at = now
    elif to_status in (ClaimStatus.APPROVED, ClaimStatus.REJECTED):
        claim.processed_at = now
    if to_status == ClaimStatus.REJECTED:
        claim.rejection_reason = reason


class ClaimLifecycleService:
    """Stores locally submitted claims and moves them through the state machine."""

    def __init__(
        self,
        storage: Storage,
        submission_gateway: Optional[SubmissionGateway] = None,
        state_machine: Optional[ClaimStateMachine] = None,
        settings: Optional[ReconcilerSettings] = None,
    ):
        self.storage = storage
        self.submission_gateway = submission_gateway
        self.state_machine = state_machine or get_claim_state_machine()
        self.settings = settings or get_settings()

    async def get(self, claim_id: str) -> Optional[Claim]:
        return await self.storage.claims.get(claim_id)

    async def get_all(self) -> list[Claim]:
        return await self.storage.claims.get_all()

    async def get_by_status(self, status: ClaimStatus) -> list[Claim]:
        return await self.storage.claims.find_all_by_index("status", status)

    async def _require(self, claim_id: str) -> Claim:
        claim = await self.get(claim_id)
        if claim is None:
            raise NotFoundError(f"Claim not found: {claim_id}")
        return claim

    async def create(self, data: ClaimCreate) -> Claim:
        claim = Claim(
            patient_id=data.patient_id,
            draft_claim_id=data.draft_claim_id,
            illness_id=data.illness_id,
            document_ids=data.document_ids,
            proof_document_ids=data.proof_document_ids,
            claim_type=data.claim_type,
            treatment_date=data.treatment_date,
            total_amount=data.total_amount,
            currency=data.currency,
            country=data.country,
            notes=data.notes,
        )
        return await self.storage.claims.save(claim)

    async def update(self, claim_id: str, data: ClaimUpdate) -> Claim:
        """Edit a claim that has not been submitted yet."""

        async def attempt() -> Claim:
            claim = await self._require(claim_id)
            if claim.status not in EDITABLE_STATUSES:
                raise ValidationError(
                    f"Claim {claim_id} can no longer be edited (status: {claim.status.value})"
                )
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(claim, field, value)
            claim.updated_at = utcnow()
            return await self.storage.claims.save(claim)

        return await retry_on_conflict(attempt, self.settings.CONFLICT_RETRY_ATTEMPTS)

    async def transition(self, claim_id: str, request: ClaimTransitionRequest) -> Claim:
        """
        Move a claim to a new status.

        Raises:
            NotFoundError: claim missing
            ValidationError: transition not in the table, or missing reason
        """

        async def attempt() -> Claim:
            claim = await self._require(claim_id)
            result = self.state_machine.validate_transition(
                claim.status, request.status, request.reason
            )
            if not result.success:
                logger.warning(f"Transition failed for claim {claim_id}: {result.error}")
                raise ValidationError(result.error)

            _apply_status(claim, request.status, request.reason, request.changed_by)
            return await self.storage.claims.save(claim)

        saved = await retry_on_conflict(attempt, self.settings.CONFLICT_RETRY_ATTEMPTS)
        logger.info(
            f"Claim {claim_id} transitioned: "
            f"{saved.status_history[-1].from_status.value} -> {saved.status.value}"
        )
        return saved

    async def apply_status_report(self, report: ClaimStatusReport) -> Claim:
        """
        Persist a collaborator-reported status after validating it.

        An identical status is a no-op.
        """

        async def attempt() -> Claim:
            claim = await self._require(report.claim_id)
            if claim.status == report.status:
                return claim

            result = self.state_machine.validate_transition(
                claim.status, report.status, report.rejection_reason, require_reason=False
            )
            if not result.success:
                raise ValidationError(
                    f"Reported status for claim {claim.id} rejected: {result.error}"
                )

            if report.insurer_claim_id:
                claim.insurer_claim_id = report.insurer_claim_id
            if report.submission_number:
                claim.submission_number = report.submission_number
            if report.approved_amount is not None:
                claim.approved_amount = report.approved_amount
            _apply_status(claim, report.status, report.rejection_reason, "submission")
            return await self.storage.claims.save(claim)

        return await retry_on_conflict(attempt, self.settings.CONFLICT_RETRY_ATTEMPTS)

    async def apply_status_reports(self, reports: list[ClaimStatusReport]) -> dict[str, int]:
        """
        Apply a batch of reports; a bad report is logged and skipped.

        Returns:
            Counts of applied and skipped reports
        """
        applied = skipped = 0
        for report in reports:
            try:
                await self.apply_status_report(report)
                applied += 1
            except (ValidationError, NotFoundError, ConflictError) as e:
                skipped += 1
                logger.warning(f"Skipping status report for claim {report.claim_id}: {e.detail}")
        return {"applied": applied, "skipped": skipped}

    async def create_claim_from_draft(self, draft_id: str, data: ClaimFromDraftInput) -> Claim:
        """
        Create a draft-status claim from an accepted draft claim.

        Raises:
            NotFoundError: draft missing
            ValidationError: draft not accepted, or already has a claim
        """
        draft = await self.storage.draft_claims.get(draft_id)
        if draft is None:
            raise NotFoundError(f"Draft claim not found: {draft_id}")
        if draft.status != DraftClaimStatus.ACCEPTED:
            raise ValidationError(
                f"Only accepted draft claims can become claims (status: {draft.status.value})"
            )
        if await self.storage.claims.find_by_index("draft_claim_id", draft_id) is not None:
            raise ValidationError(f"Draft claim {draft_id} already has a claim")

        claim = await self.create(
            ClaimCreate(
                patient_id=data.patient_id,
                draft_claim_id=draft.id,
                illness_id=draft.illness_id,
                document_ids=draft.document_ids,
                proof_document_ids=draft.payment_proof_document_ids,
                claim_type=data.claim_type,
                treatment_date=draft.treatment_date,
                total_amount=draft.payment.amount,
                currency=draft.payment.currency,
                country=data.country,
                notes=draft.doctor_notes,
            )
        )
        logger.info(f"Claim {claim.id} created from draft claim {draft_id}")
        return claim

    async def submit_claim(self, claim_id: str, changed_by: Optional[str] = None) -> Claim:
        """
        File a ready claim through the submission collaborator.

        Raises:
            ValidationError: claim not ready
            UpstreamError: collaborator failure; the claim stays ready
        """
        if self.submission_gateway is None:
            raise ValidationError("No submission gateway configured")

        claim = await self._require(claim_id)
        result = self.state_machine.validate_transition(claim.status, ClaimStatus.SUBMITTED)
        if not result.success:
            raise ValidationError(result.error)

        receipt = await self.submission_gateway.submit(claim)

        async def attempt() -> Claim:
            latest = await self._require(claim_id)
            check = self.state_machine.validate_transition(latest.status, ClaimStatus.SUBMITTED)
            if not check.success:
                raise ValidationError(check.error)
            latest.submission_number = receipt.submission_number
            if receipt.insurer_claim_id:
                latest.insurer_claim_id = receipt.insurer_claim_id
            latest.submission_log = [*latest.submission_log, *receipt.log]
            _apply_status(latest, ClaimStatus.SUBMITTED, None, changed_by)
            return await self.storage.claims.save(latest)

        saved = await retry_on_conflict(attempt, self.settings.CONFLICT_RETRY_ATTEMPTS)
        logger.info(f"Claim {claim_id} submitted as {receipt.submission_number}")
        return saved
