"""Assignment ORM — one loaned unit of an asset held by a member.

Invariants:
    - Created exactly once per granted loan, always with status 'assigned'
    - status transitions: assigned -> returned (terminal)
    - returned_at is set iff status == 'returned'
    - sponsor_id copied from the asset at grant time

Design Decisions:
    - asset_id nullable with SET NULL: deleting an asset keeps returned loan history;
      an assigned loan with no asset is a dangling reference
    - Composite index on (member_id, sponsor_id, status): the affiliation
      re-evaluation counts outstanding loans per pair
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from assetverse.db.base import Base


class Assignment(Base):
    """Loan record — the canonical loan lifecycle."""
    __tablename__ = "assignments"
    __table_args__ = (
        Index("ix_assignment_pair_status", "member_id", "sponsor_id", "status"),
        Index("ix_assignment_asset_status", "asset_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    asset_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("assets.id", ondelete="SET NULL"),
        nullable=True,
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    sponsor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sponsors.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="assigned",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    returned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
