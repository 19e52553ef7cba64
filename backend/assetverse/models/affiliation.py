"""Affiliation ORM — the membership edge between a member and a sponsor.

Invariants:
    - At most one row per (member_id, sponsor_id) — unique constraint, upsert key
    - status: active while the member holds a non-returned loan from the sponsor
    - joined_at set on first insert and never touched again
    - Reactivation reuses the same row with a new last_update

Design Decisions:
    - Deactivate instead of delete: the row keeps joined_at history and the
      unique key keeps concurrent upserts from creating duplicates
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from assetverse.db.base import Base


class Affiliation(Base):
    """Member <-> sponsor membership edge."""
    __tablename__ = "affiliations"
    __table_args__ = (
        UniqueConstraint(
            "member_id", "sponsor_id", name="uq_affiliation_member_sponsor",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    sponsor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sponsors.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active",
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_update: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
