"""Inventory Ledger — sole writer of an asset's total/available counters.

Invariants:
    - decrement_available is a conditional UPDATE guarded by available_quantity >= by;
      two grants racing for the last unit cannot both succeed
    - increment_available clamps at total_quantity (overlapping return + removal)
    - reconcile recomputes available = total - outstanding in one UPDATE
    - Never commits: the calling orchestrator owns the transaction

Design Decisions:
    - Pre-read then guarded write: the pre-read gives a precise OutOfStock message,
      the guard is what actually prevents oversubscription
    - verify() is the only read path that heals drift; drift is logged, not raised
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.core.domain_types import AssignmentStatus
from assetverse.core.enforce_ledger import (
    check_new_total, check_stock, clamp_increment, detect_drift,
    reconciled_available,
)
from assetverse.core.errors import (
    InvalidReferenceError, OutOfStockError, ResourceNotFoundError,
)
from assetverse.models.asset import Asset
from assetverse.models.assignment import Assignment

logger = logging.getLogger(__name__)


def _outstanding_subquery():
    """Correlated count of assigned loans for the asset being updated."""
    return (
        select(func.count(Assignment.id))
        .where(Assignment.asset_id == Asset.id)
        .where(Assignment.status == AssignmentStatus.ASSIGNED.value)
        .scalar_subquery()
    )


class InventoryLedger:
    """Guarded mutations of Asset.available_quantity."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load(self, asset_id: UUID) -> Asset | None:
        result = await self.db.execute(
            select(Asset)
            .where(Asset.id == asset_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def get(self, asset_id: UUID) -> Asset:
        asset = await self.load(asset_id)
        if not asset:
            raise ResourceNotFoundError("Asset", str(asset_id))
        return asset

    async def outstanding_count(self, asset_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Assignment.id))
            .where(Assignment.asset_id == asset_id)
            .where(Assignment.status == AssignmentStatus.ASSIGNED.value),
        )
        return result.scalar_one()

    async def decrement_available(self, asset_id: UUID, by: int = 1) -> Asset:
        """Take `by` units. Raises NotFound or OutOfStock."""
        asset = await self.get(asset_id)
        check_stock(str(asset_id), asset.available_quantity, by)

        result = await self.db.execute(
            update(Asset)
            .where(Asset.id == asset_id)
            .where(Asset.available_quantity >= by)
            .values(
                available_quantity=Asset.available_quantity - by,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.refresh(asset)
        if result.rowcount != 1:
            # Another grant took the unit between the read and the guard
            logger.warning(
                "Guarded decrement lost a race",
                extra={"asset_id": asset_id},
            )
            raise OutOfStockError(str(asset_id), by, asset.available_quantity)
        return asset

    async def increment_available(self, asset_id: UUID, by: int = 1) -> Asset:
        """Give back `by` units, never exceeding total_quantity."""
        asset = await self.load(asset_id)
        if not asset:
            raise InvalidReferenceError("Asset", str(asset_id))
        expected = clamp_increment(asset.total_quantity, asset.available_quantity, by)
        if expected < asset.available_quantity + by:
            logger.warning(
                f"Increment clamped at total_quantity={asset.total_quantity}",
                extra={"asset_id": asset_id},
            )

        incremented = Asset.available_quantity + by
        await self.db.execute(
            update(Asset)
            .where(Asset.id == asset_id)
            .values(
                available_quantity=case(
                    (incremented > Asset.total_quantity, Asset.total_quantity),
                    else_=incremented,
                ),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.refresh(asset)
        return asset

    async def reconcile(self, asset_id: UUID) -> Asset:
        """Recompute available from outstanding loans. Safety net, not the primary path."""
        asset = await self.get(asset_id)
        derived = Asset.total_quantity - _outstanding_subquery()
        await self.db.execute(
            update(Asset)
            .where(Asset.id == asset_id)
            .values(
                available_quantity=case((derived < 0, 0), else_=derived),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.refresh(asset)
        logger.info(
            f"Reconciled available_quantity={asset.available_quantity}",
            extra={"asset_id": asset_id},
        )
        return asset

    async def verify(self, asset_id: UUID) -> tuple[Asset, str | None]:
        """Read with drift detection. Returns (asset, drift_reason or None)."""
        asset = await self.get(asset_id)
        outstanding = await self.outstanding_count(asset_id)
        drift = detect_drift(
            asset.total_quantity, asset.available_quantity, outstanding,
        )
        if drift:
            logger.warning(
                f"Ledger drift detected ({drift}); reconciling",
                extra={"asset_id": asset_id},
            )
            asset = await self.reconcile(asset_id)
        return asset, drift

    async def resize(self, asset_id: UUID, new_total: int) -> Asset:
        """Change total_quantity; available follows as new_total - outstanding."""
        asset = await self.get(asset_id)
        outstanding = await self.outstanding_count(asset_id)
        check_new_total(new_total, outstanding)
        await self.db.execute(
            update(Asset)
            .where(Asset.id == asset_id)
            .values(
                total_quantity=new_total,
                available_quantity=reconciled_available(new_total, outstanding),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.refresh(asset)
        return asset
