"""Directory — sponsor and member registration, and the subscription write path.

Invariants:
    - Emails are unique per entity table and stored lower-case
    - A free-tier sponsor always gets default_package_limit
    - apply_subscription never evicts members: a limit below the active count
      only blocks new pairings
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assetverse.config import get_settings
from assetverse.core.domain_types import Subscription
from assetverse.core.enforce_ledger import check_quantity
from assetverse.core.errors import ResourceNotFoundError, ValidationFailedError
from assetverse.infrastructure.database import transaction
from assetverse.models.member import Member
from assetverse.models.sponsor import Sponsor

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class Directory:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _email_taken(self, model, email: str) -> bool:
        result = await self.db.execute(select(model.id).where(model.email == email))
        return result.first() is not None

    async def register_sponsor(
        self, name: str, email: str, company_name: str = "",
        subscription: Subscription = Subscription.FREE,
        package_limit: int | None = None,
    ) -> Sponsor:
        email = _normalize_email(email)
        if subscription == Subscription.FREE or package_limit is None:
            package_limit = get_settings().default_package_limit
        check_quantity(package_limit, "package_limit")
        async with transaction(self.db):
            if await self._email_taken(Sponsor, email):
                raise ValidationFailedError(f"Email '{email}' is already registered", "email")
            sponsor = Sponsor(
                name=name,
                email=email,
                company_name=company_name,
                subscription=subscription.value,
                package_limit=package_limit,
                current_employees=0,
                subscription_date=datetime.now(timezone.utc),
            )
            self.db.add(sponsor)
            await self.db.flush()
        logger.info("Sponsor registered", extra={"sponsor_id": sponsor.id})
        return sponsor

    async def register_member(self, name: str, email: str) -> Member:
        email = _normalize_email(email)
        async with transaction(self.db):
            if await self._email_taken(Member, email):
                raise ValidationFailedError(f"Email '{email}' is already registered", "email")
            member = Member(name=name, email=email)
            self.db.add(member)
            await self.db.flush()
        logger.info("Member registered", extra={"member_id": member.id})
        return member

    async def get_sponsor(self, sponsor_id: UUID) -> Sponsor:
        sponsor = await self.db.get(Sponsor, sponsor_id)
        if not sponsor:
            raise ResourceNotFoundError("Sponsor", str(sponsor_id))
        return sponsor

    async def apply_subscription(
        self, sponsor_id: UUID, subscription: Subscription, package_limit: int,
    ) -> Sponsor:
        """Payment-provider write of the tier and its package limit."""
        if subscription == Subscription.FREE:
            package_limit = get_settings().default_package_limit
        check_quantity(package_limit, "package_limit")
        async with transaction(self.db):
            sponsor = await self.get_sponsor(sponsor_id)
            sponsor.subscription = subscription.value
            sponsor.package_limit = package_limit
            sponsor.subscription_date = datetime.now(timezone.utc)
            await self.db.flush()
        if package_limit < sponsor.current_employees:
            logger.warning(
                f"Package limit {package_limit} is below the "
                f"{sponsor.current_employees} active member(s)",
                extra={"sponsor_id": sponsor_id},
            )
        logger.info(
            f"Subscription set to {subscription.value}",
            extra={"sponsor_id": sponsor_id},
        )
        return sponsor
