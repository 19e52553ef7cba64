"""Initial schema — sponsors, members, assets, assignments, asset_requests, affiliations.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "sponsors",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("company_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("subscription", sa.String(20), nullable=False, server_default="free"),
        sa.Column("package_limit", sa.Integer, nullable=False, server_default="3"),
        sa.Column("current_employees", sa.Integer, nullable=False, server_default="0"),
        sa.Column("subscription_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("package_limit >= 0", name="ck_sponsor_package_limit"),
        sa.CheckConstraint("current_employees >= 0", name="ck_sponsor_current_employees"),
    )

    op.create_table(
        "members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "assets",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("sponsor_id", UUID(as_uuid=True), sa.ForeignKey("sponsors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("asset_type", sa.String(20), nullable=False, server_default="returnable"),
        sa.Column("total_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("available_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("total_quantity >= 0", name="ck_asset_total_quantity"),
        sa.CheckConstraint(
            "available_quantity >= 0 AND available_quantity <= total_quantity",
            name="ck_asset_available_quantity",
        ),
    )
    op.create_index("ix_assets_sponsor_id", "assets", ["sponsor_id"])

    op.create_table(
        "assignments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("asset_id", UUID(as_uuid=True), sa.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True),
        sa.Column("member_id", UUID(as_uuid=True), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sponsor_id", UUID(as_uuid=True), sa.ForeignKey("sponsors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="assigned"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("returned_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_assignment_pair_status", "assignments", ["member_id", "sponsor_id", "status"])
    op.create_index("ix_assignment_asset_status", "assignments", ["asset_id", "status"])

    op.create_table(
        "asset_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("asset_id", UUID(as_uuid=True), sa.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True),
        sa.Column("member_id", UUID(as_uuid=True), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sponsor_id", UUID(as_uuid=True), sa.ForeignKey("sponsors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("note", sa.Text, nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("direct", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("assignment_id", UUID(as_uuid=True), sa.ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("processed_by", UUID(as_uuid=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_asset_requests_sponsor_id", "asset_requests", ["sponsor_id"])

    op.create_table(
        "affiliations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("member_id", UUID(as_uuid=True), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sponsor_id", UUID(as_uuid=True), sa.ForeignKey("sponsors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_update", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("member_id", "sponsor_id", name="uq_affiliation_member_sponsor"),
    )
    op.create_index("ix_affiliations_sponsor_id", "affiliations", ["sponsor_id"])


def downgrade() -> None:
    op.drop_table("affiliations")
    op.drop_table("asset_requests")
    op.drop_table("assignments")
    op.drop_table("assets")
    op.drop_table("members")
    op.drop_table("sponsors")
