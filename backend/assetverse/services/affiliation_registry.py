"""Affiliation Registry — owns the member <-> sponsor edge and the cached headcount.

Invariants:
    - One row per (member_id, sponsor_id): upsert_active is INSERT ... ON CONFLICT
      on the unique key, so concurrent grants cannot create duplicates
    - joined_at written on insert only; reactivation sets status + last_update
    - deactivate_if_empty flips to inactive only when the pair has zero assigned loans
    - sync_headcount sets Sponsor.current_employees from a COUNT in one UPDATE
    - Never commits: the calling orchestrator owns the transaction
    - list_teammates only sees sponsors the member is itself Active with

Design Decisions:
    - Dialect-specific insert (postgresql / sqlite) for the storage-level upsert;
      both expose the same on_conflict_do_update API
    - Headcount is recomputed rather than incremented: the cached counter cannot
      drift from the Active set across commits
"""

import logging
import uuid
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from assetverse.core.domain_types import AffiliationStatus, AssignmentStatus
from assetverse.core.errors import DatabaseError
from assetverse.models.affiliation import Affiliation
from assetverse.models.assignment import Assignment
from assetverse.models.member import Member
from assetverse.models.sponsor import Sponsor

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class AffiliationRegistry:
    """Membership edges and the sponsor headcount derived from them."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, member_id: UUID, sponsor_id: UUID) -> Affiliation | None:
        result = await self.db.execute(
            select(Affiliation)
            .where(Affiliation.member_id == member_id)
            .where(Affiliation.sponsor_id == sponsor_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def is_active(self, member_id: UUID, sponsor_id: UUID) -> bool:
        affiliation = await self.get(member_id, sponsor_id)
        return bool(
            affiliation and affiliation.status == AffiliationStatus.ACTIVE.value
        )

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise DatabaseError(f"no upsert support for dialect '{dialect}'", "upsert")
        return insert(Affiliation)

    async def upsert_active(
        self, member_id: UUID, sponsor_id: UUID,
    ) -> tuple[Affiliation, bool]:
        """Activate the pair. Returns (affiliation, newly_active)."""
        was_active = await self.is_active(member_id, sponsor_id)
        now = datetime.now(timezone.utc)
        stmt = self._insert().values(
            id=uuid.uuid4(),
            member_id=member_id,
            sponsor_id=sponsor_id,
            status=AffiliationStatus.ACTIVE.value,
            joined_at=now,
            last_update=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["member_id", "sponsor_id"],
            set_={
                "status": AffiliationStatus.ACTIVE.value,
                "last_update": now,
            },
        )
        await self.db.execute(stmt)
        affiliation = await self.get(member_id, sponsor_id)
        if not was_active:
            logger.info(
                "Affiliation activated",
                extra={"member_id": member_id, "sponsor_id": sponsor_id},
            )
        return affiliation, not was_active

    async def count_outstanding(self, member_id: UUID, sponsor_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Assignment.id))
            .where(Assignment.member_id == member_id)
            .where(Assignment.sponsor_id == sponsor_id)
            .where(Assignment.status == AssignmentStatus.ASSIGNED.value),
        )
        return result.scalar_one()

    async def deactivate_if_empty(self, member_id: UUID, sponsor_id: UUID) -> bool:
        """Inactivate the pair when it holds no assigned loans. True if it flipped."""
        if await self.count_outstanding(member_id, sponsor_id) > 0:
            return False
        result = await self.db.execute(
            update(Affiliation)
            .where(Affiliation.member_id == member_id)
            .where(Affiliation.sponsor_id == sponsor_id)
            .where(Affiliation.status == AffiliationStatus.ACTIVE.value)
            .values(
                status=AffiliationStatus.INACTIVE.value,
                last_update=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False),
        )
        deactivated = result.rowcount == 1
        if deactivated:
            logger.info(
                "Affiliation deactivated",
                extra={"member_id": member_id, "sponsor_id": sponsor_id},
            )
        return deactivated

    async def count_active(self, sponsor_id: UUID) -> int:
        """Authoritative Active count for capacity checks."""
        result = await self.db.execute(
            select(func.count(Affiliation.id))
            .where(Affiliation.sponsor_id == sponsor_id)
            .where(Affiliation.status == AffiliationStatus.ACTIVE.value),
        )
        return result.scalar_one()

    async def sync_headcount(self, sponsor_id: UUID) -> int:
        """Write count_active into Sponsor.current_employees. Returns the new value."""
        active = (
            select(func.count(Affiliation.id))
            .where(Affiliation.sponsor_id == Sponsor.id)
            .where(Affiliation.status == AffiliationStatus.ACTIVE.value)
            .scalar_subquery()
        )
        await self.db.execute(
            update(Sponsor)
            .where(Sponsor.id == sponsor_id)
            .values(current_employees=active)
            .execution_options(synchronize_session=False),
        )
        return await self.count_active(sponsor_id)

    async def list_active_members(self, sponsor_id: UUID) -> list[dict]:
        """Active members of a sponsor with their outstanding loan counts."""
        outstanding = (
            select(func.count(Assignment.id))
            .where(Assignment.member_id == Affiliation.member_id)
            .where(Assignment.sponsor_id == Affiliation.sponsor_id)
            .where(Assignment.status == AssignmentStatus.ASSIGNED.value)
            .correlate(Affiliation)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(Affiliation, Member.name, Member.email, outstanding)
            .join(Member, Member.id == Affiliation.member_id)
            .where(Affiliation.sponsor_id == sponsor_id)
            .where(Affiliation.status == AffiliationStatus.ACTIVE.value)
            .order_by(Affiliation.joined_at),
        )
        return [
            {
                "member_id": affiliation.member_id,
                "name": name,
                "email": email,
                "joined_at": affiliation.joined_at,
                "last_update": affiliation.last_update,
                "outstanding_loans": count,
            }
            for affiliation, name, email, count in result.all()
        ]

    async def list_active_sponsors(self, member_id: UUID) -> list[dict]:
        """Sponsors a member is actively affiliated with."""
        result = await self.db.execute(
            select(Affiliation, Sponsor.name, Sponsor.company_name)
            .join(Sponsor, Sponsor.id == Affiliation.sponsor_id)
            .where(Affiliation.member_id == member_id)
            .where(Affiliation.status == AffiliationStatus.ACTIVE.value)
            .order_by(Affiliation.joined_at),
        )
        return [
            {
                "sponsor_id": affiliation.sponsor_id,
                "sponsor_name": name,
                "company_name": company,
                "joined_at": affiliation.joined_at,
                "last_update": affiliation.last_update,
            }
            for affiliation, name, company in result.all()
        ]

    async def list_teammates(
        self, member_id: UUID, sponsor_id: UUID | None = None,
    ) -> list[dict]:
        """Other Active members under the sponsors this member is Active with."""
        mine = aliased(Affiliation)
        query = (
            select(Affiliation, Member.name, Member.email)
            .join(
                mine,
                (mine.sponsor_id == Affiliation.sponsor_id)
                & (mine.member_id == member_id)
                & (mine.status == AffiliationStatus.ACTIVE.value),
            )
            .join(Member, Member.id == Affiliation.member_id)
            .where(Affiliation.member_id != member_id)
            .where(Affiliation.status == AffiliationStatus.ACTIVE.value)
            .order_by(Member.name)
        )
        if sponsor_id is not None:
            query = query.where(Affiliation.sponsor_id == sponsor_id)
        result = await self.db.execute(query)
        return [
            {
                "sponsor_id": affiliation.sponsor_id,
                "member_id": affiliation.member_id,
                "name": name,
                "email": email,
                "joined_at": affiliation.joined_at,
            }
            for affiliation, name, email in result.all()
        ]
