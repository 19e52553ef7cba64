"""Transition & Ownership Rules — tests for role, ownership and terminal-state checks."""

from uuid import uuid4

import pytest

from assetverse.core.domain_types import Principal, Role
from assetverse.core.enforce_transitions import (
    check_assignment_open, check_loan_actor, check_request_pending,
    check_sponsor_owns, require_role,
)
from assetverse.core.errors import AlreadyProcessedError, ForbiddenError


def _sponsor():
    return Principal(id=uuid4(), role=Role.SPONSOR)


def _member():
    return Principal(id=uuid4(), role=Role.MEMBER)


def test_require_role_rejects_wrong_role():
    with pytest.raises(ForbiddenError) as exc:
        require_role(_member(), Role.SPONSOR)
    assert exc.value.http_status == 403


def test_check_sponsor_owns_accepts_owner():
    sponsor = _sponsor()
    assert check_sponsor_owns(sponsor, sponsor.id) is None


def test_check_sponsor_owns_rejects_other_sponsor():
    with pytest.raises(ForbiddenError):
        check_sponsor_owns(_sponsor(), uuid4())


def test_check_sponsor_owns_rejects_member_with_same_id():
    member = _member()
    with pytest.raises(ForbiddenError):
        check_sponsor_owns(member, member.id)


def test_check_request_pending():
    assert check_request_pending("r1", "pending") is None
    with pytest.raises(AlreadyProcessedError) as exc:
        check_request_pending("r1", "approved")
    assert exc.value.status == "approved"


def test_check_assignment_open():
    assert check_assignment_open("a1", "assigned") is None
    with pytest.raises(AlreadyProcessedError):
        check_assignment_open("a1", "returned")


def test_check_loan_actor_member_and_sponsor():
    member, sponsor = _member(), _sponsor()
    assert check_loan_actor(member, member.id, sponsor.id) is None
    assert check_loan_actor(sponsor, member.id, sponsor.id) is None


def test_check_loan_actor_rejects_strangers():
    member, sponsor = _member(), _sponsor()
    with pytest.raises(ForbiddenError):
        check_loan_actor(_member(), member.id, sponsor.id)
    with pytest.raises(ForbiddenError):
        check_loan_actor(_sponsor(), member.id, sponsor.id)
