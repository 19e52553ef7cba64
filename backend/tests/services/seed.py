"""Seed Helpers — build sponsors, members and assets directly in the test DB.

Invariants:
    - Every helper commits, so rows are visible to route-level sessions
    - Emails are random per call: tests never collide on unique keys

Design Decisions:
    - Plain async functions over fixtures: a test seeds exactly what it needs
    - principal()/headers() mirror what the identity provider would supply
"""

from uuid import uuid4

from assetverse.core.domain_types import Principal, Role
from assetverse.models.asset import Asset
from assetverse.models.member import Member
from assetverse.models.sponsor import Sponsor


def _email(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:8]}@example.test"


async def add_sponsor(db, package_limit: int = 3, name: str = "Acme HR") -> Sponsor:
    sponsor = Sponsor(
        name=name,
        email=_email("hr"),
        company_name="Acme",
        subscription="free",
        package_limit=package_limit,
        current_employees=0,
    )
    db.add(sponsor)
    await db.commit()
    return sponsor


async def add_member(db, name: str = "Mia") -> Member:
    member = Member(name=name, email=_email("member"))
    db.add(member)
    await db.commit()
    return member


async def add_asset(
    db, sponsor: Sponsor, total: int = 3, available: int | None = None,
    name: str = "Laptop", asset_type: str = "returnable",
) -> Asset:
    asset = Asset(
        sponsor_id=sponsor.id,
        name=name,
        asset_type=asset_type,
        total_quantity=total,
        available_quantity=total if available is None else available,
    )
    db.add(asset)
    await db.commit()
    return asset


def principal(entity) -> Principal:
    role = Role.SPONSOR if isinstance(entity, Sponsor) else Role.MEMBER
    return Principal(id=entity.id, role=role)


def headers(entity) -> dict[str, str]:
    p = principal(entity)
    return {"X-Principal-Id": str(p.id), "X-Principal-Role": p.role.value}
