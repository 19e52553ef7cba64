"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - AssetId, AssignmentId, RequestId, MemberId, SponsorId wrap UUIDs
    - All valid states encoded as Enums — no raw string matching
    - Returned, Approved and Rejected are terminal states

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and bind to String columns via .value
    - Principal is a frozen dataclass: the identity provider's output is never mutated
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

AssetId = NewType("AssetId", UUID)
AssignmentId = NewType("AssignmentId", UUID)
RequestId = NewType("RequestId", UUID)
MemberId = NewType("MemberId", UUID)
SponsorId = NewType("SponsorId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class AssetType(str, Enum):
    """Whether a loaned unit is expected back."""
    RETURNABLE = "returnable"
    NON_RETURNABLE = "non_returnable"


class AssignmentStatus(str, Enum):
    """Loan lifecycle — Returned is terminal."""
    ASSIGNED = "assigned"
    RETURNED = "returned"


class RequestStatus(str, Enum):
    """Request lifecycle — Pending transitions exactly once."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequestDecision(str, Enum):
    """Sponsor decision on a pending request."""
    APPROVE = "approve"
    REJECT = "reject"


class AffiliationStatus(str, Enum):
    """Membership edge between a member and a sponsor."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class Role(str, Enum):
    """Principal roles issued by the identity provider."""
    SPONSOR = "sponsor"
    MEMBER = "member"


class Subscription(str, Enum):
    """Subscription tiers written by the payment provider."""
    FREE = "free"
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


class WorkflowStep(str, Enum):
    """Ordered steps of a grant (approve / direct assign) or a release."""
    CAPACITY_CHECK = "capacity_check"
    LEDGER_DECREMENT = "ledger_decrement"
    ASSIGNMENT_CREATE = "assignment_create"
    AFFILIATION_UPSERT = "affiliation_upsert"
    HEADCOUNT_SYNC = "headcount_sync"
    REQUEST_TRANSITION = "request_transition"
    AUDIT_REQUEST = "audit_request"
    ASSIGNMENT_RETURN = "assignment_return"
    ASSIGNMENT_DELETE = "assignment_delete"
    LEDGER_INCREMENT = "ledger_increment"
    AFFILIATION_DEACTIVATE = "affiliation_deactivate"


# ─── Principal ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Principal:
    """Verified caller identity supplied by the upstream identity provider."""
    id: UUID
    role: Role

    @property
    def is_sponsor(self) -> bool:
        return self.role == Role.SPONSOR

    @property
    def is_member(self) -> bool:
        return self.role == Role.MEMBER
