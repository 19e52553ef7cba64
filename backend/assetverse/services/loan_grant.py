"""Loan Grant — the shared step sequence behind approval and direct assignment.

Invariants:
    - Order: capacity check -> ledger decrement -> assignment create ->
      affiliation upsert -> headcount sync (only for a new pairing)
    - Capacity is checked before any write; a failed gate leaves nothing to undo
    - Every completed step is recorded on the caller's StepLog
    - Runs inside the caller's transaction; never commits

Design Decisions:
    - One implementation for both entry points: approval and direct assignment
      differ only in what they do with the Request record
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.core.domain_types import WorkflowStep
from assetverse.core.step_log import StepLog
from assetverse.models.affiliation import Affiliation
from assetverse.models.asset import Asset
from assetverse.models.assignment import Assignment
from assetverse.services.affiliation_registry import AffiliationRegistry
from assetverse.services.assignment_tracker import AssignmentTracker
from assetverse.services.capacity_gate import CapacityGate
from assetverse.services.inventory_ledger import InventoryLedger


@dataclass
class GrantOutcome:
    """Entities produced by a successful grant."""
    asset: Asset
    assignment: Assignment
    affiliation: Affiliation
    new_pairing: bool
    current_employees: int | None


class LoanGrant:
    """Applies the ledger/loan/affiliation effects of granting one unit."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)
        self.tracker = AssignmentTracker(db)
        self.registry = AffiliationRegistry(db)
        self.gate = CapacityGate(db, self.registry)

    async def grant(
        self, asset_id: UUID, member_id: UUID, sponsor_id: UUID, steps: StepLog,
    ) -> GrantOutcome:
        await self.gate.check_pairing(sponsor_id, member_id)
        steps.mark(WorkflowStep.CAPACITY_CHECK)

        asset = await self.ledger.decrement_available(asset_id, 1)
        steps.mark(WorkflowStep.LEDGER_DECREMENT)

        assignment = await self.tracker.create(asset_id, member_id, sponsor_id)
        steps.mark(WorkflowStep.ASSIGNMENT_CREATE)

        affiliation, new_pairing = await self.registry.upsert_active(
            member_id, sponsor_id,
        )
        steps.mark(WorkflowStep.AFFILIATION_UPSERT)

        headcount = None
        if new_pairing:
            headcount = await self.registry.sync_headcount(sponsor_id)
            steps.mark(WorkflowStep.HEADCOUNT_SYNC)

        return GrantOutcome(
            asset=asset,
            assignment=assignment,
            affiliation=affiliation,
            new_pairing=new_pairing,
            current_employees=headcount,
        )
