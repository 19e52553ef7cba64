"""Request Routes — members ask for assets, sponsors decide.

Invariants:
    - /pending is sponsor-only, /mine is member-only
    - A decision response always carries the completed workflow steps
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.api.deps import get_principal
from assetverse.core.domain_types import Principal
from assetverse.infrastructure.database import get_db
from assetverse.schemas.loan import (
    AssignmentResponse, GrantResponse, MemberRequestResponse,
    PendingRequestResponse, RequestCreate, RequestDecisionBody, RequestResponse,
)
from assetverse.services.request_workflow import RequestWorkflow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/requests", tags=["requests"])


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    body: RequestCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await RequestWorkflow(db).create_request(principal, body.asset_id, body.note)


@router.get("/pending", response_model=list[PendingRequestResponse])
async def list_pending(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Pending requests addressed to the acting sponsor."""
    return await RequestWorkflow(db).pending_for_sponsor(principal)


@router.get("/mine", response_model=list[MemberRequestResponse])
async def list_mine(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await RequestWorkflow(db).list_for_member(principal)


@router.post("/{request_id}/decision", response_model=GrantResponse)
async def decide_request(
    request_id: UUID,
    body: RequestDecisionBody,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await RequestWorkflow(db).decide(request_id, principal, body.decision)
    grant = outcome.grant
    return GrantResponse(
        request=RequestResponse.model_validate(outcome.request),
        assignment=AssignmentResponse.model_validate(grant.assignment) if grant else None,
        available_quantity=grant.asset.available_quantity if grant else None,
        new_pairing=grant.new_pairing if grant else False,
        current_employees=grant.current_employees if grant else None,
        completed_steps=outcome.completed_steps,
    )
