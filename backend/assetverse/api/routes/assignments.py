"""Assignment Routes — a member's loans, returns and hard deletes."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.api.deps import get_principal
from assetverse.core.domain_types import Principal, Role
from assetverse.core.enforce_transitions import require_role
from assetverse.infrastructure.database import get_db
from assetverse.schemas.loan import (
    AssignmentResponse, AssignmentView, ReleaseResponse, ReturnBody,
)
from assetverse.services.assignment_tracker import AssignmentTracker
from assetverse.services.loan_release import LoanRelease, ReleaseOutcome

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/assignments", tags=["assignments"])


def _release_response(outcome: ReleaseOutcome) -> ReleaseResponse:
    return ReleaseResponse(
        assignment_id=outcome.assignment_id,
        assignment=(
            AssignmentResponse.model_validate(outcome.assignment)
            if outcome.assignment else None
        ),
        available_quantity=outcome.asset.available_quantity if outcome.asset else None,
        affiliation_deactivated=outcome.affiliation_deactivated,
        current_employees=outcome.current_employees,
        completed_steps=outcome.completed_steps,
    )


@router.get("", response_model=list[AssignmentView])
async def list_my_assignments(
    include_returned: bool = Query(False),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """The acting member's loans, outstanding only unless include_returned."""
    require_role(principal, Role.MEMBER)
    return await AssignmentTracker(db).list_for_member(principal.id, include_returned)


@router.post("/{assignment_id}/return", response_model=ReleaseResponse)
async def return_assignment(
    assignment_id: UUID,
    body: ReturnBody | None = None,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    notes = body.notes if body else None
    outcome = await LoanRelease(db).return_assignment(principal, assignment_id, notes)
    return _release_response(outcome)


@router.delete("/{assignment_id}", response_model=ReleaseResponse)
async def delete_assignment(
    assignment_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await LoanRelease(db).delete_assignment(principal, assignment_id)
    return _release_response(outcome)
