"""Member Routes — registration, affiliations, and removal from a sponsor."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.api.deps import get_principal
from assetverse.core.domain_types import Principal, Role
from assetverse.core.enforce_transitions import require_role
from assetverse.infrastructure.database import get_db
from assetverse.schemas.directory import (
    MemberAffiliationResponse, MemberCreate, MemberResponse, TeammateResponse,
)
from assetverse.schemas.loan import RemovalResponse
from assetverse.services.affiliation_registry import AffiliationRegistry
from assetverse.services.directory import Directory
from assetverse.services.loan_release import LoanRelease

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/members", tags=["members"])


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def register_member(body: MemberCreate, db: AsyncSession = Depends(get_db)):
    return await Directory(db).register_member(body.name, body.email)


@router.get("/me/affiliations", response_model=list[MemberAffiliationResponse])
async def my_affiliations(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    require_role(principal, Role.MEMBER)
    return await AffiliationRegistry(db).list_active_sponsors(principal.id)


@router.get("/me/team", response_model=list[TeammateResponse])
async def my_team(
    sponsor_id: UUID | None = Query(None),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Fellow Active members, optionally narrowed to one sponsor."""
    require_role(principal, Role.MEMBER)
    return await AffiliationRegistry(db).list_teammates(principal.id, sponsor_id)


@router.delete("/{member_id}/affiliation", response_model=RemovalResponse)
async def remove_member(
    member_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Acting sponsor removes the member, returning every outstanding loan."""
    return await LoanRelease(db).remove_member(principal, member_id)
