"""Assignment Tracker — owns loan records and their Assigned -> Returned lifecycle.

Invariants:
    - create() is called only after a successful ledger decrement
    - mark_returned is a guarded UPDATE (status = 'assigned'); a record is returned once
    - Only the loaned member or the owning sponsor may return or delete a loan
    - Never touches counters: callers follow up with the ledger and the registry

Design Decisions:
    - delete() is a separate terminal path from mark_returned; it reports whether
      the deleted record was still outstanding so the caller decides on restoration
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.core.domain_types import AssignmentStatus, Principal
from assetverse.core.enforce_transitions import (
    check_assignment_open, check_loan_actor,
)
from assetverse.core.errors import AlreadyProcessedError, ResourceNotFoundError
from assetverse.models.asset import Asset
from assetverse.models.asset_request import AssetRequest
from assetverse.models.assignment import Assignment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletedLoan:
    """Snapshot of a hard-deleted assignment."""
    id: UUID
    asset_id: UUID | None
    member_id: UUID
    sponsor_id: UUID
    was_outstanding: bool


class AssignmentTracker:
    """Loan record persistence and transitions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self, asset_id: UUID, member_id: UUID, sponsor_id: UUID,
    ) -> Assignment:
        assignment = Assignment(
            asset_id=asset_id,
            member_id=member_id,
            sponsor_id=sponsor_id,
            status=AssignmentStatus.ASSIGNED.value,
            assigned_at=datetime.now(timezone.utc),
        )
        self.db.add(assignment)
        await self.db.flush()
        return assignment

    async def get(self, assignment_id: UUID) -> Assignment:
        result = await self.db.execute(
            select(Assignment)
            .where(Assignment.id == assignment_id)
            .execution_options(populate_existing=True),
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise ResourceNotFoundError("Assignment", str(assignment_id))
        return assignment

    async def mark_returned(
        self, assignment_id: UUID, actor: Principal, notes: str | None = None,
    ) -> Assignment:
        """Assigned -> Returned. Raises NotFound, Forbidden, AlreadyProcessed."""
        assignment = await self.get(assignment_id)
        check_loan_actor(actor, assignment.member_id, assignment.sponsor_id)
        check_assignment_open(str(assignment_id), assignment.status)

        values = {
            "status": AssignmentStatus.RETURNED.value,
            "returned_at": datetime.now(timezone.utc),
        }
        if notes is not None:
            values["notes"] = notes
        result = await self.db.execute(
            update(Assignment)
            .where(Assignment.id == assignment_id)
            .where(Assignment.status == AssignmentStatus.ASSIGNED.value)
            .values(**values)
            .execution_options(synchronize_session=False),
        )
        await self.db.refresh(assignment)
        if result.rowcount != 1:
            raise AlreadyProcessedError(
                "Assignment", str(assignment_id), assignment.status,
            )
        logger.info(
            "Assignment marked returned",
            extra={"assignment_id": assignment_id, "member_id": assignment.member_id},
        )
        return assignment

    async def delete(self, assignment_id: UUID, actor: Principal) -> DeletedLoan:
        """Hard-delete a loan record (either status)."""
        assignment = await self.get(assignment_id)
        check_loan_actor(actor, assignment.member_id, assignment.sponsor_id)
        snapshot = DeletedLoan(
            id=assignment.id,
            asset_id=assignment.asset_id,
            member_id=assignment.member_id,
            sponsor_id=assignment.sponsor_id,
            was_outstanding=assignment.status == AssignmentStatus.ASSIGNED.value,
        )
        await self.db.execute(
            update(AssetRequest)
            .where(AssetRequest.assignment_id == assignment_id)
            .values(assignment_id=None)
            .execution_options(synchronize_session=False),
        )
        await self.db.delete(assignment)
        await self.db.flush()
        return snapshot

    async def outstanding_for_pair(
        self, member_id: UUID, sponsor_id: UUID,
    ) -> list[Assignment]:
        result = await self.db.execute(
            select(Assignment)
            .where(Assignment.member_id == member_id)
            .where(Assignment.sponsor_id == sponsor_id)
            .where(Assignment.status == AssignmentStatus.ASSIGNED.value)
            .order_by(Assignment.assigned_at)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def list_for_member(
        self, member_id: UUID, include_returned: bool = False,
    ) -> list[dict]:
        """Member's loans joined with asset name/type (asset may be gone)."""
        query = (
            select(Assignment, Asset.name, Asset.asset_type)
            .outerjoin(Asset, Asset.id == Assignment.asset_id)
            .where(Assignment.member_id == member_id)
            .order_by(Assignment.assigned_at.desc())
        )
        if not include_returned:
            query = query.where(
                Assignment.status == AssignmentStatus.ASSIGNED.value,
            )
        result = await self.db.execute(query)
        return [
            {
                "assignment": assignment,
                "asset_name": name or "Unknown Asset",
                "asset_type": asset_type,
            }
            for assignment, name, asset_type in result.all()
        ]
