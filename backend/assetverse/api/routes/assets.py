"""Asset Routes — catalog CRUD, direct assignment and reconciliation.

Invariants:
    - Every route resolves the principal first; ownership is checked in services
    - Pagination: page >= 1, 1 <= limit <= 100
    - /analytics is declared before /{asset_id} so the literal path wins
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.api.deps import get_principal
from assetverse.core.domain_types import AssetType, Principal
from assetverse.infrastructure.database import get_db
from assetverse.schemas.asset import (
    AssetAnalyticsResponse, AssetCreate, AssetDetailResponse, AssetListResponse,
    AssetResponse, AssetUpdate, DirectAssignBody,
)
from assetverse.schemas.loan import AssignmentResponse, GrantResponse, RequestResponse
from assetverse.services.asset_catalog import AssetCatalog
from assetverse.services.direct_assignment import DirectAssignment

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/assets", tags=["assets"])


@router.post("", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def create_asset(
    body: AssetCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await AssetCatalog(db).create(
        principal, body.name, body.asset_type, body.total_quantity,
    )


@router.get("", response_model=AssetListResponse)
async def list_assets(
    search: str | None = Query(None, max_length=200),
    asset_type: AssetType | None = Query(None, alias="type"),
    available_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await AssetCatalog(db).list_assets(
        principal, search=search, asset_type=asset_type,
        available_only=available_only, page=page, limit=limit,
    )


@router.get("/analytics", response_model=AssetAnalyticsResponse)
async def asset_analytics(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Asset counts by type and the five most-requested assets."""
    return await AssetCatalog(db).analytics(principal)


@router.get("/{asset_id}", response_model=AssetDetailResponse)
async def get_asset(
    asset_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    asset, drift = await AssetCatalog(db).get(principal, asset_id)
    return AssetDetailResponse(
        **AssetResponse.model_validate(asset).model_dump(), drift=drift,
    )


@router.patch("/{asset_id}", response_model=AssetResponse)
async def update_asset(
    asset_id: UUID,
    body: AssetUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await AssetCatalog(db).update(
        principal, asset_id,
        name=body.name,
        asset_type=body.asset_type,
        total_quantity=body.total_quantity,
    )


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(
    asset_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    await AssetCatalog(db).delete(principal, asset_id)


@router.post("/{asset_id}/reconcile", response_model=AssetResponse)
async def reconcile_asset(
    asset_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await AssetCatalog(db).reconcile(principal, asset_id)


@router.post(
    "/{asset_id}/assign", response_model=GrantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_asset(
    asset_id: UUID,
    body: DirectAssignBody,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Sponsor assigns one unit straight to a member."""
    outcome = await DirectAssignment(db).assign(principal, asset_id, body.member_id)
    return GrantResponse(
        request=RequestResponse.model_validate(outcome.audit_request),
        assignment=AssignmentResponse.model_validate(outcome.grant.assignment),
        available_quantity=outcome.grant.asset.available_quantity,
        new_pairing=outcome.grant.new_pairing,
        current_employees=outcome.grant.current_employees,
        completed_steps=outcome.completed_steps,
    )
