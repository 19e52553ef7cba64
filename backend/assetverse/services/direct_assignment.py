"""Direct Assignment — sponsor hands a unit to a member without a prior request.

Invariants:
    - Only the sponsor that owns the asset may assign it
    - Same grant sequence and capacity rule as approval
    - Writes an audit AssetRequest (approved, direct=True) linked to the new loan
    - One transaction: any failed step leaves ledger, loans and affiliations untouched
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.core.domain_types import (
    Principal, RequestStatus, Role, WorkflowStep,
)
from assetverse.core.enforce_transitions import check_sponsor_owns, require_role
from assetverse.core.errors import AssetVerseError, ResourceNotFoundError
from assetverse.core.step_log import StepLog
from assetverse.infrastructure.database import transaction
from assetverse.models.asset_request import AssetRequest
from assetverse.models.member import Member
from assetverse.services.loan_grant import GrantOutcome, LoanGrant

logger = logging.getLogger(__name__)

DIRECT_ASSIGNMENT_NOTE = "Direct assignment"


@dataclass
class DirectOutcome:
    grant: GrantOutcome
    audit_request: AssetRequest
    completed_steps: list[str]


class DirectAssignment:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.grants = LoanGrant(db)

    async def assign(
        self, principal: Principal, asset_id: UUID, member_id: UUID,
    ) -> DirectOutcome:
        require_role(principal, Role.SPONSOR)
        steps = StepLog()
        try:
            async with transaction(self.db):
                asset = await self.grants.ledger.get(asset_id)
                check_sponsor_owns(principal, asset.sponsor_id)
                if not await self.db.get(Member, member_id):
                    raise ResourceNotFoundError("Member", str(member_id))

                grant = await self.grants.grant(
                    asset_id, member_id, principal.id, steps,
                )
                now = datetime.now(timezone.utc)
                audit = AssetRequest(
                    asset_id=asset_id,
                    member_id=member_id,
                    sponsor_id=principal.id,
                    note=DIRECT_ASSIGNMENT_NOTE,
                    status=RequestStatus.APPROVED.value,
                    direct=True,
                    assignment_id=grant.assignment.id,
                    processed_by=principal.id,
                    processed_at=now,
                    created_at=now,
                )
                self.db.add(audit)
                await self.db.flush()
                steps.mark(WorkflowStep.AUDIT_REQUEST)
        except AssetVerseError as e:
            steps.annotate(e, rolled_back=True)
            logger.warning(
                f"Direct assignment failed: {e.message}",
                extra={"asset_id": asset_id, "member_id": member_id, "error_code": e.code},
            )
            raise

        logger.info(
            "Asset assigned directly",
            extra={
                "asset_id": asset_id,
                "member_id": member_id,
                "assignment_id": grant.assignment.id,
            },
        )
        return DirectOutcome(
            grant=grant, audit_request=audit, completed_steps=steps.names,
        )
