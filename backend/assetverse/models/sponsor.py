"""Sponsor ORM — organization that owns assets and employs members under a tier.

Invariants:
    - email is unique and stored lower-case
    - package_limit is written only by the subscription path
    - current_employees equals the count of Active affiliations after every commit

Design Decisions:
    - current_employees cached on the row for cheap reads; recomputed by a
      single UPDATE ... SELECT count(*) whenever the Active set can change
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from assetverse.db.base import Base


class Sponsor(Base):
    """Sponsoring organization with a subscription-bounded headcount."""
    __tablename__ = "sponsors"
    __table_args__ = (
        CheckConstraint("package_limit >= 0", name="ck_sponsor_package_limit"),
        CheckConstraint("current_employees >= 0", name="ck_sponsor_current_employees"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    company_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    subscription: Mapped[str] = mapped_column(
        String(20), nullable=False, default="free",
    )
    package_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    current_employees: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    subscription_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
