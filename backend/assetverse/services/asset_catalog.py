"""Asset Catalog — sponsor-facing create/update/delete/list of assets and analytics.

Invariants:
    - New assets start with available_quantity == total_quantity
    - Only the owning sponsor mutates an asset; members may read any asset
    - Resizing keeps available = new_total - outstanding and never goes below
      the units currently on loan
    - An asset with assigned loans cannot be deleted
    - get() heals counter drift through the ledger and commits the heal

Design Decisions:
    - Deleting an asset detaches returned loans and requests (asset_id -> NULL)
      explicitly, so history survives on stores without FK enforcement
    - The summary covers the whole filtered set, not just the current page
    - Search terms match literally: LIKE wildcards in user input are escaped
    - Analytics rank member requests only; direct-assignment audit rows are excluded
"""

import logging
import math
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.config import get_settings
from assetverse.core.domain_types import AssetType, Principal, Role
from assetverse.core.enforce_ledger import check_quantity, summarize_stock
from assetverse.core.enforce_transitions import check_sponsor_owns, require_role
from assetverse.core.errors import AssetInUseError, ResourceNotFoundError
from assetverse.infrastructure.database import transaction
from assetverse.models.asset import Asset
from assetverse.models.asset_request import AssetRequest
from assetverse.models.assignment import Assignment
from assetverse.models.sponsor import Sponsor
from assetverse.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

TOP_REQUESTED_LIMIT = 5


def _contains_pattern(term: str) -> str:
    """LIKE pattern matching `term` literally anywhere in the value."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class AssetCatalog:
    """Asset CRUD around the inventory ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)

    async def create(
        self, principal: Principal, name: str, asset_type: AssetType,
        total_quantity: int,
    ) -> Asset:
        require_role(principal, Role.SPONSOR)
        check_quantity(total_quantity, "total_quantity")
        async with transaction(self.db):
            if not await self.db.get(Sponsor, principal.id):
                raise ResourceNotFoundError("Sponsor", str(principal.id))
            asset = Asset(
                sponsor_id=principal.id,
                name=name,
                asset_type=asset_type.value,
                total_quantity=total_quantity,
                available_quantity=total_quantity,
            )
            self.db.add(asset)
            await self.db.flush()
        logger.info(
            f"Asset created with {total_quantity} unit(s)",
            extra={"asset_id": asset.id, "sponsor_id": principal.id},
        )
        return asset

    async def update(
        self, principal: Principal, asset_id: UUID,
        name: str | None = None,
        asset_type: AssetType | None = None,
        total_quantity: int | None = None,
    ) -> Asset:
        async with transaction(self.db):
            asset = await self.ledger.get(asset_id)
            check_sponsor_owns(principal, asset.sponsor_id)
            if name is not None:
                asset.name = name
            if asset_type is not None:
                asset.asset_type = asset_type.value
            await self.db.flush()
            if total_quantity is not None:
                asset = await self.ledger.resize(asset_id, total_quantity)
        return asset

    async def delete(self, principal: Principal, asset_id: UUID) -> None:
        async with transaction(self.db):
            asset = await self.ledger.get(asset_id)
            check_sponsor_owns(principal, asset.sponsor_id)
            outstanding = await self.ledger.outstanding_count(asset_id)
            if outstanding:
                raise AssetInUseError(str(asset_id), outstanding)
            for model in (Assignment, AssetRequest):
                await self.db.execute(
                    update(model)
                    .where(model.asset_id == asset_id)
                    .values(asset_id=None)
                    .execution_options(synchronize_session=False),
                )
            await self.db.delete(asset)
        logger.info("Asset deleted", extra={"asset_id": asset_id})

    async def get(self, principal: Principal, asset_id: UUID) -> tuple[Asset, str | None]:
        """Read one asset; a drifted counter is reconciled and committed."""
        async with transaction(self.db):
            asset, drift = await self.ledger.verify(asset_id)
            if principal.is_sponsor:
                check_sponsor_owns(principal, asset.sponsor_id)
        return asset, drift

    async def reconcile(self, principal: Principal, asset_id: UUID) -> Asset:
        async with transaction(self.db):
            asset = await self.ledger.get(asset_id)
            check_sponsor_owns(principal, asset.sponsor_id)
            asset = await self.ledger.reconcile(asset_id)
        return asset

    async def list_assets(
        self, principal: Principal,
        search: str | None = None,
        asset_type: AssetType | None = None,
        available_only: bool = False,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        """Paginated listing. Sponsors see their own assets, members see all."""
        filters = []
        if principal.is_sponsor:
            filters.append(Asset.sponsor_id == principal.id)
        if search:
            filters.append(Asset.name.ilike(_contains_pattern(search), escape="\\"))
        if asset_type is not None:
            filters.append(Asset.asset_type == asset_type.value)
        if available_only:
            filters.append(Asset.available_quantity > 0)

        result = await self.db.execute(
            select(Asset.total_quantity, Asset.available_quantity).where(*filters),
        )
        summary = summarize_stock(
            [tuple(row) for row in result.all()],
            get_settings().low_stock_threshold,
        )

        result = await self.db.execute(
            select(Asset)
            .where(*filters)
            .order_by(Asset.created_at.desc(), Asset.name)
            .offset((page - 1) * limit)
            .limit(limit),
        )
        total = summary["total_assets"]
        return {
            "assets": list(result.scalars().all()),
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "summary": summary,
        }


    async def analytics(self, principal: Principal) -> dict:
        """Per-type asset counts and the sponsor's most-requested assets."""
        require_role(principal, Role.SPONSOR)
        result = await self.db.execute(
            select(Asset.asset_type, func.count(Asset.id))
            .where(Asset.sponsor_id == principal.id)
            .group_by(Asset.asset_type),
        )
        counts = dict(result.all())

        request_count = func.count(AssetRequest.id).label("request_count")
        result = await self.db.execute(
            select(Asset.id, Asset.name, request_count)
            .join(AssetRequest, AssetRequest.asset_id == Asset.id)
            .where(AssetRequest.sponsor_id == principal.id)
            .where(AssetRequest.direct.is_(False))
            .group_by(Asset.id, Asset.name)
            .order_by(request_count.desc(), Asset.name)
            .limit(TOP_REQUESTED_LIMIT),
        )
        return {
            "type_distribution": [
                {"asset_type": asset_type, "count": counts.get(asset_type.value, 0)}
                for asset_type in AssetType
            ],
            "top_requested": [
                {"asset_id": asset_id, "name": name, "request_count": count}
                for asset_id, name, count in result.all()
            ],
        }
