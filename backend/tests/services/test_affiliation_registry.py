"""Affiliation Registry & Capacity Gate — upsert uniqueness, deactivation, headcount, limits.

Invariants:
    - Repeated upserts leave exactly one row per (member, sponsor)
    - Reactivation keeps joined_at
    - sync_headcount writes the Active count onto the sponsor row
    - The gate rejects the (N+1)-th new pairing and ignores the limit for Active pairs
    - can_add is True below package_limit and False at it
    - Teammates are other Active members of sponsors the member is Active with
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from assetverse.core.errors import CapacityExceededError, ResourceNotFoundError
from assetverse.models.affiliation import Affiliation
from assetverse.models.assignment import Assignment
from assetverse.models.sponsor import Sponsor
from assetverse.services.affiliation_registry import AffiliationRegistry
from assetverse.services.capacity_gate import CapacityGate

from tests.services.seed import add_member, add_sponsor


async def test_upsert_creates_then_reuses_row(test_db, sponsor, member):
    registry = AffiliationRegistry(test_db)
    first, created = await registry.upsert_active(member.id, sponsor.id)
    second, created_again = await registry.upsert_active(member.id, sponsor.id)
    await test_db.commit()

    assert created is True
    assert created_again is False
    assert first.id == second.id
    count = await test_db.scalar(
        select(func.count(Affiliation.id))
        .where(Affiliation.member_id == member.id)
        .where(Affiliation.sponsor_id == sponsor.id),
    )
    assert count == 1


async def test_reactivation_keeps_joined_at(test_db, sponsor, member):
    registry = AffiliationRegistry(test_db)
    affiliation, _ = await registry.upsert_active(member.id, sponsor.id)
    joined_at = affiliation.joined_at
    assert await registry.deactivate_if_empty(member.id, sponsor.id) is True

    reactivated, newly_active = await registry.upsert_active(member.id, sponsor.id)
    assert newly_active is True
    assert reactivated.status == "active"
    assert reactivated.joined_at == joined_at


async def test_deactivate_if_empty_keeps_pair_with_loans(test_db, sponsor, member, asset):
    registry = AffiliationRegistry(test_db)
    await registry.upsert_active(member.id, sponsor.id)
    test_db.add(Assignment(
        asset_id=asset.id, member_id=member.id, sponsor_id=sponsor.id, status="assigned",
    ))
    await test_db.flush()

    assert await registry.deactivate_if_empty(member.id, sponsor.id) is False
    assert await registry.is_active(member.id, sponsor.id) is True


async def test_deactivate_if_empty_is_noop_when_inactive(test_db, sponsor, member):
    registry = AffiliationRegistry(test_db)
    await registry.upsert_active(member.id, sponsor.id)
    assert await registry.deactivate_if_empty(member.id, sponsor.id) is True
    assert await registry.deactivate_if_empty(member.id, sponsor.id) is False


async def test_sync_headcount_writes_active_count(test_db, sponsor):
    registry = AffiliationRegistry(test_db)
    members = [await add_member(test_db) for _ in range(2)]
    for m in members:
        await registry.upsert_active(m.id, sponsor.id)

    assert await registry.sync_headcount(sponsor.id) == 2
    row = await test_db.get(Sponsor, sponsor.id, populate_existing=True)
    assert row.current_employees == 2


async def test_list_active_members_counts_loans(test_db, sponsor, member, asset):
    registry = AffiliationRegistry(test_db)
    await registry.upsert_active(member.id, sponsor.id)
    test_db.add(Assignment(
        asset_id=asset.id, member_id=member.id, sponsor_id=sponsor.id, status="assigned",
    ))
    await test_db.commit()

    rows = await registry.list_active_members(sponsor.id)
    assert len(rows) == 1
    assert rows[0]["member_id"] == member.id
    assert rows[0]["outstanding_loans"] == 1

    sponsors = await registry.list_active_sponsors(member.id)
    assert [s["sponsor_id"] for s in sponsors] == [sponsor.id]


# ─── CapacityGate ────────────────────────────────────────────────

async def test_gate_rejects_pairing_past_limit(test_db):
    sponsor = await add_sponsor(test_db, package_limit=2)
    registry = AffiliationRegistry(test_db)
    gate = CapacityGate(test_db, registry)

    for _ in range(2):
        m = await add_member(test_db)
        assert await gate.check_pairing(sponsor.id, m.id) is False
        await registry.upsert_active(m.id, sponsor.id)

    extra = await add_member(test_db)
    with pytest.raises(CapacityExceededError) as exc:
        await gate.check_pairing(sponsor.id, extra.id)
    assert exc.value.active_count == 2


async def test_gate_skips_limit_for_active_pair(test_db):
    sponsor = await add_sponsor(test_db, package_limit=1)
    member = await add_member(test_db)
    registry = AffiliationRegistry(test_db)
    await registry.upsert_active(member.id, sponsor.id)

    assert await CapacityGate(test_db, registry).check_pairing(sponsor.id, member.id) is True


async def test_gate_unknown_sponsor(test_db, member):
    with pytest.raises(ResourceNotFoundError):
        await CapacityGate(test_db).check_pairing(uuid4(), member.id)


async def test_gate_status_reports_drift(test_db, sponsor, member):
    registry = AffiliationRegistry(test_db)
    await registry.upsert_active(member.id, sponsor.id)

    status = await CapacityGate(test_db, registry).status(sponsor.id)
    assert status["active_members"] == 1
    assert status["current_employees"] == 0
    assert status["in_sync"] is False
    assert status["remaining"] == 2


async def test_can_add_true_below_limit_false_at_limit(test_db):
    sponsor = await add_sponsor(test_db, package_limit=2)
    sponsor_id = sponsor.id
    registry = AffiliationRegistry(test_db)
    gate = CapacityGate(test_db, registry)

    assert await gate.can_add(sponsor_id) is True
    first = await add_member(test_db)
    await registry.upsert_active(first.id, sponsor_id)
    assert await gate.can_add(sponsor_id) is True

    second = await add_member(test_db)
    await registry.upsert_active(second.id, sponsor_id)
    assert await gate.can_add(sponsor_id) is False


async def test_gate_rechecks_pair_after_locking_sponsor(test_db, monkeypatch):
    """A pairing made while the gate waits for the sponsor lock is not a new pairing."""
    sponsor = await add_sponsor(test_db, package_limit=1)
    sponsor_id = sponsor.id
    registry = AffiliationRegistry(test_db)
    gate = CapacityGate(test_db, registry)
    member = await add_member(test_db)
    member_id = member.id

    locked_get_sponsor = gate.get_sponsor

    async def get_sponsor_after_concurrent_grant(sid, lock=False):
        await registry.upsert_active(member_id, sid)
        return await locked_get_sponsor(sid, lock=lock)

    monkeypatch.setattr(gate, "get_sponsor", get_sponsor_after_concurrent_grant)

    assert await gate.check_pairing(sponsor_id, member_id) is True


# ─── Teammates ───────────────────────────────────────────────────

async def test_list_teammates_excludes_self_and_inactive(test_db, sponsor):
    registry = AffiliationRegistry(test_db)
    me = await add_member(test_db, name="Mia")
    ana = await add_member(test_db, name="Ana")
    gone = await add_member(test_db, name="Gus")
    for m in (me, ana, gone):
        await registry.upsert_active(m.id, sponsor.id)
    await registry.deactivate_if_empty(gone.id, sponsor.id)

    other = await add_sponsor(test_db, name="Other HR")
    stranger = await add_member(test_db, name="Sol")
    await registry.upsert_active(stranger.id, other.id)
    await test_db.commit()

    team = await registry.list_teammates(me.id)
    assert [row["member_id"] for row in team] == [ana.id]
    assert team[0]["sponsor_id"] == sponsor.id
    assert team[0]["name"] == "Ana"


async def test_list_teammates_without_active_affiliation_is_empty(test_db, sponsor):
    registry = AffiliationRegistry(test_db)
    me, peer = await add_member(test_db), await add_member(test_db)
    await registry.upsert_active(peer.id, sponsor.id)
    await test_db.commit()

    assert await registry.list_teammates(me.id) == []


async def test_list_teammates_narrowed_to_sponsor(test_db, sponsor):
    registry = AffiliationRegistry(test_db)
    other = await add_sponsor(test_db, name="Other HR")
    me = await add_member(test_db, name="Mia")
    ana = await add_member(test_db, name="Ana")
    bo = await add_member(test_db, name="Bo")
    for m, s in ((me, sponsor), (me, other), (ana, sponsor), (bo, other)):
        await registry.upsert_active(m.id, s.id)
    await test_db.commit()

    everyone = await registry.list_teammates(me.id)
    assert {row["member_id"] for row in everyone} == {ana.id, bo.id}

    narrowed = await registry.list_teammates(me.id, sponsor_id=other.id)
    assert [row["member_id"] for row in narrowed] == [bo.id]
