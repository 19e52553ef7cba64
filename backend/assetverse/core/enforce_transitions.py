"""Transition & Ownership Rules — who may move which record to which state.

Invariants:
    - All functions are PURE: no IO, no async, no DB
    - Pending -> Approved | Rejected happens once; Assigned -> Returned happens once
    - Sponsors act only on records carrying their own sponsor_id
    - Members act only on their own loans

Design Decisions:
    - Raise typed errors instead of returning flags: every caller surfaces
      the failure to the API unchanged
"""

from uuid import UUID

from assetverse.core.domain_types import (
    AssignmentStatus, Principal, RequestStatus, Role,
)
from assetverse.core.errors import AlreadyProcessedError, ForbiddenError


def require_role(principal: Principal, role: Role) -> None:
    if principal.role != role:
        raise ForbiddenError(f"Operation requires the {role.value} role")


def check_sponsor_owns(principal: Principal, sponsor_id: UUID) -> None:
    """Sponsor-side operations require the acting sponsor to own the record."""
    require_role(principal, Role.SPONSOR)
    if principal.id != sponsor_id:
        raise ForbiddenError("Record belongs to another sponsor")


def check_request_pending(request_id: str, status: str) -> None:
    if status != RequestStatus.PENDING.value:
        raise AlreadyProcessedError("Request", request_id, status)


def check_assignment_open(assignment_id: str, status: str) -> None:
    if status == AssignmentStatus.RETURNED.value:
        raise AlreadyProcessedError("Assignment", assignment_id, status)


def check_loan_actor(
    principal: Principal, member_id: UUID, sponsor_id: UUID,
) -> None:
    """The loaned member, or the sponsor that granted the loan."""
    if principal.role == Role.MEMBER and principal.id == member_id:
        return
    if principal.role == Role.SPONSOR and principal.id == sponsor_id:
        return
    raise ForbiddenError("Only the loaned member or the owning sponsor may do this")
