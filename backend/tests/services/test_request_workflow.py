"""Request Workflow — create, approve, reject; idempotency and all-or-nothing approval.

Invariants:
    - Approving once decrements available by exactly 1 and creates one Assignment
    - A second approval fails AlreadyProcessed and changes nothing
    - A failed approval rolls back every earlier step and reports them
    - Capacity is checked only for new pairings

Design Decisions:
    - Ids are captured before any failing call: a rollback expires ORM instances
"""

import logging
from uuid import uuid4

import pytest
from sqlalchemy import func, select, update

from assetverse.core.domain_types import RequestDecision
from assetverse.core.errors import (
    AlreadyProcessedError, CapacityExceededError, ForbiddenError,
    InvalidReferenceError, OutOfStockError, ResourceNotFoundError,
)
from assetverse.models.affiliation import Affiliation
from assetverse.models.asset import Asset
from assetverse.models.asset_request import AssetRequest
from assetverse.models.assignment import Assignment
from assetverse.models.sponsor import Sponsor
from assetverse.services.affiliation_registry import AffiliationRegistry
from assetverse.services.loan_release import LoanRelease
from assetverse.services.request_workflow import RequestWorkflow

from tests.services.seed import add_asset, add_member, add_sponsor, principal

APPROVE = RequestDecision.APPROVE
REJECT = RequestDecision.REJECT


async def _count(db, model, **filters):
    query = select(func.count(model.id))
    for column, value in filters.items():
        query = query.where(getattr(model, column) == value)
    return await db.scalar(query)


async def test_lending_scenario(test_db, sponsor, member, asset):
    """Two loans to one member, returned one by one."""
    sp, mp = principal(sponsor), principal(member)
    sponsor_id, member_id = sponsor.id, member.id
    workflow = RequestWorkflow(test_db)
    release = LoanRelease(test_db)

    first = await workflow.create_request(mp, asset.id, "onboarding")
    assert first.status == "pending"
    assert first.sponsor_id == sponsor_id

    approved = await workflow.decide(first.id, sp, APPROVE)
    assert approved.grant.asset.available_quantity == 2
    assert approved.grant.assignment.status == "assigned"
    assert approved.grant.new_pairing is True
    assert approved.grant.current_employees == 1
    assert approved.request.status == "approved"
    assert approved.request.assignment_id == approved.grant.assignment.id
    assert approved.completed_steps == [
        "capacity_check", "ledger_decrement", "assignment_create",
        "affiliation_upsert", "headcount_sync", "request_transition",
    ]
    loan_one = approved.grant.assignment.id

    second = await workflow.create_request(mp, asset.id)
    again = await workflow.decide(second.id, sp, APPROVE)
    assert again.grant.asset.available_quantity == 1
    assert again.grant.new_pairing is False
    assert "headcount_sync" not in again.completed_steps
    loan_two = again.grant.assignment.id
    row = await test_db.get(Sponsor, sponsor_id, populate_existing=True)
    assert row.current_employees == 1

    returned = await release.return_assignment(mp, loan_one)
    assert returned.asset.available_quantity == 2
    assert returned.affiliation_deactivated is False
    assert await AffiliationRegistry(test_db).is_active(member_id, sponsor_id)

    returned = await release.return_assignment(mp, loan_two)
    assert returned.asset.available_quantity == 3
    assert returned.affiliation_deactivated is True
    assert returned.current_employees == 0
    assert not await AffiliationRegistry(test_db).is_active(member_id, sponsor_id)


async def test_second_approval_is_already_processed(test_db, sponsor, member, asset):
    sp, asset_id = principal(sponsor), asset.id
    workflow = RequestWorkflow(test_db)
    request = await workflow.create_request(principal(member), asset_id)
    request_id = request.id

    await workflow.decide(request_id, sp, APPROVE)
    with pytest.raises(AlreadyProcessedError):
        await workflow.decide(request_id, sp, APPROVE)

    refreshed = await test_db.get(Asset, asset_id, populate_existing=True)
    assert refreshed.available_quantity == 2
    assert await _count(test_db, Assignment, asset_id=asset_id) == 1


async def test_reject_leaves_inventory_untouched(test_db, sponsor, member, asset):
    sp, asset_id = principal(sponsor), asset.id
    workflow = RequestWorkflow(test_db)
    request = await workflow.create_request(principal(member), asset_id)
    request_id = request.id

    outcome = await workflow.decide(request_id, sp, REJECT)
    assert outcome.grant is None
    assert outcome.request.status == "rejected"
    assert outcome.request.processed_by == sp.id
    assert outcome.request.processed_at is not None
    assert outcome.completed_steps == ["request_transition"]

    with pytest.raises(AlreadyProcessedError):
        await workflow.decide(request_id, sp, APPROVE)
    refreshed = await test_db.get(Asset, asset_id, populate_existing=True)
    assert refreshed.available_quantity == 3


async def test_out_of_stock_rolls_back_and_reports_steps(test_db, sponsor):
    sp = principal(sponsor)
    asset = await add_asset(test_db, sponsor, total=1)
    asset_id, sponsor_id = asset.id, sponsor.id
    first, second = await add_member(test_db), await add_member(test_db)
    second_id = second.id
    workflow = RequestWorkflow(test_db)

    r1 = await workflow.create_request(principal(first), asset_id)
    r2 = await workflow.create_request(principal(second), asset_id)
    r2_id = r2.id
    await workflow.decide(r1.id, sp, APPROVE)

    with pytest.raises(OutOfStockError) as exc:
        await workflow.decide(r2_id, sp, APPROVE)
    body = exc.value.to_response()["error"]["context"]
    assert body["completed_steps"] == ["capacity_check"]
    assert body["rolled_back"] is True

    pending = await test_db.get(AssetRequest, r2_id, populate_existing=True)
    assert pending.status == "pending"
    assert await _count(
        test_db, Affiliation, member_id=second_id, sponsor_id=sponsor_id,
    ) == 0


async def test_capacity_blocks_new_pairing_but_not_repeat_loans(test_db):
    sponsor = await add_sponsor(test_db, package_limit=1)
    sp = principal(sponsor)
    asset = await add_asset(test_db, sponsor, total=5)
    asset_id = asset.id
    first, second = await add_member(test_db), await add_member(test_db)
    first_p = principal(first)
    workflow = RequestWorkflow(test_db)

    r1 = await workflow.create_request(principal(first), asset_id)
    await workflow.decide(r1.id, sp, APPROVE)

    r2 = await workflow.create_request(principal(second), asset_id)
    r2_id = r2.id
    with pytest.raises(CapacityExceededError) as exc:
        await workflow.decide(r2_id, sp, APPROVE)
    assert exc.value.context.completed_steps == []

    refreshed = await test_db.get(Asset, asset_id, populate_existing=True)
    assert refreshed.available_quantity == 4

    r3 = await workflow.create_request(first_p, asset_id)
    outcome = await workflow.decide(r3.id, sp, APPROVE)
    assert outcome.grant.new_pairing is False
    assert outcome.grant.asset.available_quantity == 3


async def test_other_sponsor_cannot_decide(test_db, sponsor, member, asset):
    other = await add_sponsor(test_db, name="Rival HR")
    other_p = principal(other)
    request = await RequestWorkflow(test_db).create_request(principal(member), asset.id)
    request_id = request.id

    with pytest.raises(ForbiddenError):
        await RequestWorkflow(test_db).decide(request_id, other_p, APPROVE)


async def test_dangling_asset_is_invalid_reference(test_db, sponsor, member, asset):
    sp = principal(sponsor)
    request = await RequestWorkflow(test_db).create_request(principal(member), asset.id)
    request_id = request.id
    await test_db.execute(
        update(AssetRequest).where(AssetRequest.id == request_id).values(asset_id=None),
    )
    await test_db.commit()

    with pytest.raises(InvalidReferenceError):
        await RequestWorkflow(test_db).decide(request_id, sp, APPROVE)


async def test_create_request_requires_member_role(test_db, sponsor, asset):
    with pytest.raises(ForbiddenError):
        await RequestWorkflow(test_db).create_request(principal(sponsor), asset.id)


async def test_create_request_unknown_asset(test_db, member):
    with pytest.raises(ResourceNotFoundError):
        await RequestWorkflow(test_db).create_request(principal(member), uuid4())


async def test_decide_unknown_request(test_db, sponsor):
    with pytest.raises(ResourceNotFoundError):
        await RequestWorkflow(test_db).decide(uuid4(), principal(sponsor), APPROVE)


async def test_pending_views(test_db, sponsor, member, asset):
    sp, mp = principal(sponsor), principal(member)
    workflow = RequestWorkflow(test_db)
    kept = await workflow.create_request(mp, asset.id, "keyboard please")
    decided = await workflow.create_request(mp, asset.id)
    await workflow.decide(decided.id, sp, REJECT)

    pending = await workflow.pending_for_sponsor(sp)
    assert [row["request"].id for row in pending] == [kept.id]
    assert pending[0]["member_name"] == "Mia"
    assert pending[0]["asset_name"] == "Laptop"

    mine = await workflow.list_for_member(mp)
    assert {row["request"].id for row in mine} == {kept.id, decided.id}


async def test_decision_log_names_resulting_status(test_db, sponsor, member, asset, caplog):
    sp, mp = principal(sponsor), principal(member)
    workflow = RequestWorkflow(test_db)
    rejected = await workflow.create_request(mp, asset.id)
    approved = await workflow.create_request(mp, asset.id)

    with caplog.at_level(logging.INFO, logger="assetverse.services.request_workflow"):
        await workflow.decide(rejected.id, sp, REJECT)
        await workflow.decide(approved.id, sp, APPROVE)

    messages = [r.getMessage() for r in caplog.records]
    assert "Request rejected" in messages
    assert "Request approved" in messages
