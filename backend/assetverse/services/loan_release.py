"""Loan Release — return, delete, and member removal.

Invariants:
    - Return order: mark returned -> restore one unit -> re-evaluate the affiliation
    - A unit is restored only for a loan that was still Assigned
    - Headcount is recomputed whenever the affiliation flips to inactive
    - remove_member attempts every outstanding loan of the pair; one failing loan
      never stops the others and is reported with its error code

Design Decisions:
    - return/delete are single transactions (all-or-nothing)
    - remove_member commits each loan on its own so a late failure cannot undo
      loans already released; the affiliation step runs last in its own transaction
    - Plain ids are captured before each per-loan transaction: a rollback expires
      every ORM instance in the session
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.core.domain_types import AffiliationStatus, Principal, Role, WorkflowStep
from assetverse.core.enforce_transitions import require_role
from assetverse.core.errors import (
    AlreadyProcessedError, AssetVerseError, InvalidReferenceError,
    ResourceNotFoundError,
)
from assetverse.core.step_log import StepLog
from assetverse.infrastructure.database import transaction
from assetverse.models.asset import Asset
from assetverse.models.assignment import Assignment
from assetverse.models.member import Member
from assetverse.services.affiliation_registry import AffiliationRegistry
from assetverse.services.assignment_tracker import AssignmentTracker
from assetverse.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

AUTO_RETURN_NOTE = "Auto-returned due to member removal"


@dataclass
class ReleaseOutcome:
    """Result of returning or deleting one loan."""
    assignment_id: UUID
    assignment: Assignment | None
    asset: Asset | None
    affiliation_deactivated: bool
    current_employees: int | None
    completed_steps: list[str]


@dataclass
class FailedRelease:
    assignment_id: UUID
    error_code: str
    message: str


@dataclass
class RemovalReport:
    """Per-loan outcome of removing a member from a sponsor."""
    member_id: UUID
    sponsor_id: UUID
    released: list[UUID] = field(default_factory=list)
    failed: list[FailedRelease] = field(default_factory=list)
    affiliation_status: str = AffiliationStatus.ACTIVE.value
    current_employees: int = 0


class LoanRelease:
    """Orchestrates every path that ends a loan."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)
        self.tracker = AssignmentTracker(db)
        self.registry = AffiliationRegistry(db)

    async def _restore(
        self, asset_id: UUID | None, member_id: UUID, sponsor_id: UUID,
        steps: StepLog,
    ) -> tuple[Asset, bool, int | None]:
        if asset_id is None:
            raise InvalidReferenceError("Asset", "null")
        asset = await self.ledger.increment_available(asset_id, 1)
        steps.mark(WorkflowStep.LEDGER_INCREMENT)

        deactivated = await self.registry.deactivate_if_empty(member_id, sponsor_id)
        headcount = None
        if deactivated:
            steps.mark(WorkflowStep.AFFILIATION_DEACTIVATE)
            headcount = await self.registry.sync_headcount(sponsor_id)
            steps.mark(WorkflowStep.HEADCOUNT_SYNC)
        return asset, deactivated, headcount

    async def return_assignment(
        self, principal: Principal, assignment_id: UUID, notes: str | None = None,
    ) -> ReleaseOutcome:
        """Assigned -> Returned, restoring the unit."""
        steps = StepLog()
        try:
            async with transaction(self.db):
                assignment = await self.tracker.mark_returned(
                    assignment_id, principal, notes,
                )
                steps.mark(WorkflowStep.ASSIGNMENT_RETURN)
                asset, deactivated, headcount = await self._restore(
                    assignment.asset_id, assignment.member_id,
                    assignment.sponsor_id, steps,
                )
        except AssetVerseError as e:
            steps.annotate(e, rolled_back=True)
            logger.warning(
                f"Return failed: {e.message}",
                extra={"assignment_id": assignment_id, "error_code": e.code},
            )
            raise
        return ReleaseOutcome(
            assignment_id=assignment_id,
            assignment=assignment,
            asset=asset,
            affiliation_deactivated=deactivated,
            current_employees=headcount,
            completed_steps=steps.names,
        )

    async def delete_assignment(
        self, principal: Principal, assignment_id: UUID,
    ) -> ReleaseOutcome:
        """Hard-delete a loan. An outstanding loan gives its unit back first."""
        steps = StepLog()
        asset = None
        deactivated = False
        headcount = None
        try:
            async with transaction(self.db):
                loan = await self.tracker.delete(assignment_id, principal)
                steps.mark(WorkflowStep.ASSIGNMENT_DELETE)
                if loan.was_outstanding:
                    asset, deactivated, headcount = await self._restore(
                        loan.asset_id, loan.member_id, loan.sponsor_id, steps,
                    )
        except AssetVerseError as e:
            steps.annotate(e, rolled_back=True)
            logger.warning(
                f"Delete failed: {e.message}",
                extra={"assignment_id": assignment_id, "error_code": e.code},
            )
            raise
        logger.info("Assignment deleted", extra={"assignment_id": assignment_id})
        return ReleaseOutcome(
            assignment_id=assignment_id,
            assignment=None,
            asset=asset,
            affiliation_deactivated=deactivated,
            current_employees=headcount,
            completed_steps=steps.names,
        )

    async def remove_member(
        self, principal: Principal, member_id: UUID,
    ) -> RemovalReport:
        """Return every outstanding loan of (member, acting sponsor), then deactivate."""
        require_role(principal, Role.SPONSOR)
        sponsor_id = principal.id

        if not await self.db.get(Member, member_id):
            raise ResourceNotFoundError("Member", str(member_id))
        affiliation = await self.registry.get(member_id, sponsor_id)
        if not affiliation:
            raise ResourceNotFoundError("Affiliation", f"{member_id}:{sponsor_id}")
        loans = [
            (a.id, a.asset_id)
            for a in await self.tracker.outstanding_for_pair(member_id, sponsor_id)
        ]
        if affiliation.status == AffiliationStatus.INACTIVE.value and not loans:
            raise AlreadyProcessedError(
                "Affiliation", f"{member_id}:{sponsor_id}", affiliation.status,
            )

        report = RemovalReport(member_id=member_id, sponsor_id=sponsor_id)
        for assignment_id, asset_id in loans:
            try:
                async with transaction(self.db):
                    await self.tracker.mark_returned(
                        assignment_id, principal, AUTO_RETURN_NOTE,
                    )
                    if asset_id is None:
                        raise InvalidReferenceError("Asset", "null")
                    await self.ledger.increment_available(asset_id, 1)
                report.released.append(assignment_id)
            except AssetVerseError as e:
                logger.warning(
                    f"Loan release failed during member removal: {e.message}",
                    extra={
                        "assignment_id": assignment_id,
                        "member_id": member_id,
                        "error_code": e.code,
                    },
                )
                report.failed.append(FailedRelease(assignment_id, e.code, e.message))

        async with transaction(self.db):
            await self.registry.deactivate_if_empty(member_id, sponsor_id)
            report.current_employees = await self.registry.sync_headcount(sponsor_id)
            affiliation = await self.registry.get(member_id, sponsor_id)
            report.affiliation_status = affiliation.status

        logger.info(
            f"Member removed: {len(report.released)} released, {len(report.failed)} failed",
            extra={"member_id": member_id, "sponsor_id": sponsor_id},
        )
        return report
