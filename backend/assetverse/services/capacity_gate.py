"""Capacity Gate — package-limit check for new member pairings.

Invariants:
    - Read-only: never mutates ledger, loans or affiliations
    - Evaluated before any ledger decrement when the pair is not already Active
    - A repeat loan to an Active member never consults the limit
    - New-pairing checks lock the sponsor row (SELECT ... FOR UPDATE) for the
      rest of the transaction so concurrent pairings for one sponsor serialize

Design Decisions:
    - Counts Active affiliations through the registry (authoritative), not the
      cached current_employees column
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.core.enforce_capacity import can_add, capacity_summary, check_capacity
from assetverse.core.errors import CapacityExceededError, ResourceNotFoundError
from assetverse.models.sponsor import Sponsor
from assetverse.services.affiliation_registry import AffiliationRegistry

logger = logging.getLogger(__name__)


class CapacityGate:
    """Sponsor package-limit evaluation."""

    def __init__(self, db: AsyncSession, registry: AffiliationRegistry | None = None):
        self.db = db
        self.registry = registry or AffiliationRegistry(db)

    async def get_sponsor(self, sponsor_id: UUID, lock: bool = False) -> Sponsor:
        query = (
            select(Sponsor)
            .where(Sponsor.id == sponsor_id)
            .execution_options(populate_existing=True)
        )
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        sponsor = result.scalar_one_or_none()
        if not sponsor:
            raise ResourceNotFoundError("Sponsor", str(sponsor_id))
        return sponsor

    async def can_add(self, sponsor_id: UUID) -> bool:
        sponsor = await self.get_sponsor(sponsor_id)
        active = await self.registry.count_active(sponsor_id)
        return can_add(active, sponsor.package_limit)

    async def check_pairing(self, sponsor_id: UUID, member_id: UUID) -> bool:
        """Clear a grant for the pair. Returns True if the pair was already Active.

        Raises CapacityExceededError for a new pairing at the limit.
        """
        if await self.registry.is_active(member_id, sponsor_id):
            return True
        sponsor = await self.get_sponsor(sponsor_id, lock=True)
        # re-read under the lock: a concurrent grant may have activated the pair
        if await self.registry.is_active(member_id, sponsor_id):
            return True
        active = await self.registry.count_active(sponsor_id)
        try:
            check_capacity(str(sponsor_id), active, sponsor.package_limit, False)
        except CapacityExceededError:
            logger.warning(
                f"Capacity gate rejected new pairing ({active}/{sponsor.package_limit})",
                extra={"sponsor_id": sponsor_id, "member_id": member_id},
            )
            raise
        return False

    async def status(self, sponsor_id: UUID) -> dict:
        sponsor = await self.get_sponsor(sponsor_id)
        active = await self.registry.count_active(sponsor_id)
        summary = capacity_summary(
            sponsor.package_limit, active, sponsor.current_employees,
        )
        summary["sponsor_id"] = sponsor_id
        summary["subscription"] = sponsor.subscription
        return summary
