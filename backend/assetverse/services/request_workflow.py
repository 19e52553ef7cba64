"""Request Workflow — member asks, sponsor approves or rejects, exactly once.

Invariants:
    - create_request snapshots sponsor_id from the asset; never re-derived
    - decide() requires the acting sponsor to own the request
    - Reject touches only the request; approve runs the grant sequence then
      flips the request with a guarded UPDATE (status = 'pending')
    - The whole decision is one transaction: a failed step rolls back every
      earlier step, and the raised error lists the steps that had completed
    - A retried approval finds status != pending and fails AlreadyProcessed
      before any ledger or loan effect repeats

Design Decisions:
    - The guarded status flip is the idempotency latch: if a concurrent decision
      won, rowcount is 0 and everything done in this transaction is discarded
    - Approved requests link to their Assignment; the loan lifecycle lives there
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.core.domain_types import (
    Principal, RequestDecision, RequestStatus, Role, WorkflowStep,
)
from assetverse.core.enforce_transitions import (
    check_request_pending, check_sponsor_owns, require_role,
)
from assetverse.core.errors import (
    AlreadyProcessedError, AssetVerseError, InvalidReferenceError,
    ResourceNotFoundError,
)
from assetverse.core.step_log import StepLog
from assetverse.infrastructure.database import transaction
from assetverse.models.asset import Asset
from assetverse.models.asset_request import AssetRequest
from assetverse.models.member import Member
from assetverse.services.loan_grant import GrantOutcome, LoanGrant

logger = logging.getLogger(__name__)


@dataclass
class DecisionOutcome:
    """Result of a sponsor decision."""
    request: AssetRequest
    grant: GrantOutcome | None
    completed_steps: list[str]


class RequestWorkflow:
    """Pending -> Approved | Rejected state machine."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.grants = LoanGrant(db)
        self.ledger = self.grants.ledger

    async def _load(self, request_id: UUID) -> AssetRequest:
        result = await self.db.execute(
            select(AssetRequest)
            .where(AssetRequest.id == request_id)
            .execution_options(populate_existing=True),
        )
        request = result.scalar_one_or_none()
        if not request:
            raise ResourceNotFoundError("Request", str(request_id))
        return request

    async def create_request(
        self, principal: Principal, asset_id: UUID, note: str = "",
    ) -> AssetRequest:
        """Member asks for one unit of an asset."""
        require_role(principal, Role.MEMBER)
        async with transaction(self.db):
            member = await self.db.get(Member, principal.id)
            if not member:
                raise ResourceNotFoundError("Member", str(principal.id))
            asset = await self.ledger.get(asset_id)
            request = AssetRequest(
                asset_id=asset.id,
                member_id=member.id,
                sponsor_id=asset.sponsor_id,
                note=note or "",
                status=RequestStatus.PENDING.value,
                created_at=datetime.now(timezone.utc),
            )
            self.db.add(request)
            await self.db.flush()
        logger.info(
            "Request created",
            extra={"request_id": request.id, "asset_id": asset_id, "member_id": principal.id},
        )
        return request

    async def _transition(
        self, request_id: UUID, principal: Principal, status: RequestStatus,
        assignment_id: UUID | None = None,
    ) -> None:
        result = await self.db.execute(
            update(AssetRequest)
            .where(AssetRequest.id == request_id)
            .where(AssetRequest.status == RequestStatus.PENDING.value)
            .values(
                status=status.value,
                processed_by=principal.id,
                processed_at=datetime.now(timezone.utc),
                assignment_id=assignment_id,
            )
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            raise AlreadyProcessedError("Request", str(request_id), "processed")

    async def decide(
        self, request_id: UUID, principal: Principal, decision: RequestDecision,
    ) -> DecisionOutcome:
        """Approve or reject a pending request."""
        steps = StepLog()
        grant = None
        try:
            async with transaction(self.db):
                request = await self._load(request_id)
                check_sponsor_owns(principal, request.sponsor_id)
                check_request_pending(str(request_id), request.status)

                if decision == RequestDecision.REJECT:
                    await self._transition(request_id, principal, RequestStatus.REJECTED)
                else:
                    if request.asset_id is None:
                        raise InvalidReferenceError("Asset", "null")
                    grant = await self.grants.grant(
                        request.asset_id, request.member_id,
                        request.sponsor_id, steps,
                    )
                    await self._transition(
                        request_id, principal, RequestStatus.APPROVED,
                        assignment_id=grant.assignment.id,
                    )
                steps.mark(WorkflowStep.REQUEST_TRANSITION)
                await self.db.refresh(request)
        except AssetVerseError as e:
            steps.annotate(e, rolled_back=True)
            logger.warning(
                f"Decision on request failed: {e.message}",
                extra={"request_id": request_id, "error_code": e.code},
            )
            raise

        logger.info(
            f"Request {request.status}",
            extra={"request_id": request_id, "sponsor_id": principal.id},
        )
        return DecisionOutcome(request=request, grant=grant, completed_steps=steps.names)

    async def pending_for_sponsor(self, principal: Principal) -> list[dict]:
        """Pending requests addressed to the acting sponsor."""
        require_role(principal, Role.SPONSOR)
        result = await self.db.execute(
            select(AssetRequest, Member.name, Member.email, Asset.name, Asset.available_quantity)
            .join(Member, Member.id == AssetRequest.member_id)
            .outerjoin(Asset, Asset.id == AssetRequest.asset_id)
            .where(AssetRequest.sponsor_id == principal.id)
            .where(AssetRequest.status == RequestStatus.PENDING.value)
            .order_by(AssetRequest.created_at),
        )
        return [
            {
                "request": request,
                "member_name": member_name,
                "member_email": member_email,
                "asset_name": asset_name or "Unknown Asset",
                "available_quantity": available,
            }
            for request, member_name, member_email, asset_name, available in result.all()
        ]

    async def list_for_member(self, principal: Principal) -> list[dict]:
        """The acting member's own requests, newest first."""
        require_role(principal, Role.MEMBER)
        result = await self.db.execute(
            select(AssetRequest, Asset.name)
            .outerjoin(Asset, Asset.id == AssetRequest.asset_id)
            .where(AssetRequest.member_id == principal.id)
            .order_by(AssetRequest.created_at.desc()),
        )
        return [
            {"request": request, "asset_name": asset_name or "Unknown Asset"}
            for request, asset_name in result.all()
        ]
