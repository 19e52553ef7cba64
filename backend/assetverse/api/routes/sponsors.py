"""Sponsor Routes — registration, capacity, subscription writes and roster.

Invariants:
    - Capacity and roster are visible only to the sponsor itself
    - PUT /{id}/subscription is called by the payment provider, authenticated
      by the webhook token instead of a principal
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.api.deps import get_principal, verify_webhook_token
from assetverse.core.domain_types import Principal
from assetverse.core.enforce_transitions import check_sponsor_owns
from assetverse.infrastructure.database import get_db
from assetverse.schemas.directory import (
    ActiveMemberResponse, CapacityResponse, SponsorCreate, SponsorResponse,
    SubscriptionUpdate,
)
from assetverse.services.affiliation_registry import AffiliationRegistry
from assetverse.services.capacity_gate import CapacityGate
from assetverse.services.directory import Directory

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sponsors", tags=["sponsors"])


@router.post("", response_model=SponsorResponse, status_code=status.HTTP_201_CREATED)
async def register_sponsor(body: SponsorCreate, db: AsyncSession = Depends(get_db)):
    return await Directory(db).register_sponsor(
        body.name, body.email, body.company_name,
        subscription=body.subscription, package_limit=body.package_limit,
    )


@router.get("/{sponsor_id}/capacity", response_model=CapacityResponse)
async def get_capacity(
    sponsor_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    check_sponsor_owns(principal, sponsor_id)
    return await CapacityGate(db).status(sponsor_id)


@router.put(
    "/{sponsor_id}/subscription", response_model=SponsorResponse,
    dependencies=[Depends(verify_webhook_token)],
)
async def apply_subscription(
    sponsor_id: UUID,
    body: SubscriptionUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await Directory(db).apply_subscription(
        sponsor_id, body.subscription, body.package_limit,
    )


@router.get("/{sponsor_id}/members", response_model=list[ActiveMemberResponse])
async def list_members(
    sponsor_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    check_sponsor_owns(principal, sponsor_id)
    return await AffiliationRegistry(db).list_active_members(sponsor_id)
