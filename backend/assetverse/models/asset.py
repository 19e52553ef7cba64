"""Asset ORM — a sponsor's pool of identical loanable units.

Invariants:
    - 0 <= available_quantity <= total_quantity (check constraint + guarded UPDATEs)
    - available_quantity is mutated only by the inventory ledger
    - asset_type is one of: returnable, non_returnable

Design Decisions:
    - Counter stored, not derived: the conditional decrement is the concurrency
      guard against two grants racing for the last unit
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from assetverse.db.base import Base


class Asset(Base):
    """Loanable asset with total/available counters."""
    __tablename__ = "assets"
    __table_args__ = (
        CheckConstraint("total_quantity >= 0", name="ck_asset_total_quantity"),
        CheckConstraint(
            "available_quantity >= 0 AND available_quantity <= total_quantity",
            name="ck_asset_available_quantity",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    sponsor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sponsors.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    asset_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="returnable",
    )
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_quantity: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
