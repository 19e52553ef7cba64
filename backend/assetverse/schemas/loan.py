"""Loan Schemas — requests, decisions, assignments and release reports.

Invariants:
    - RequestCreate.note is at most 500 chars, stripped
    - RequestDecisionBody.decision is one of: approve, reject
    - Every workflow response lists the steps that completed
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assetverse.core.domain_types import (
    AssignmentStatus, RequestDecision, RequestStatus,
)


class RequestCreate(BaseModel):
    asset_id: UUID
    note: str = Field("", max_length=500)

    @field_validator("note")
    @classmethod
    def strip_note(cls, v: str) -> str:
        return v.strip()


class RequestDecisionBody(BaseModel):
    decision: RequestDecision


class RequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    asset_id: UUID | None
    member_id: UUID
    sponsor_id: UUID
    note: str
    status: RequestStatus
    direct: bool
    assignment_id: UUID | None = None
    processed_by: UUID | None = None
    processed_at: datetime | None = None
    created_at: datetime


class PendingRequestResponse(BaseModel):
    request: RequestResponse
    member_name: str
    member_email: str
    asset_name: str
    available_quantity: int | None


class MemberRequestResponse(BaseModel):
    request: RequestResponse
    asset_name: str


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    asset_id: UUID | None
    member_id: UUID
    sponsor_id: UUID
    status: AssignmentStatus
    notes: str | None = None
    assigned_at: datetime
    returned_at: datetime | None = None


class AssignmentView(BaseModel):
    assignment: AssignmentResponse
    asset_name: str
    asset_type: str | None


class GrantResponse(BaseModel):
    """Outcome of an approval or a direct assignment."""
    request: RequestResponse
    assignment: AssignmentResponse | None = None
    available_quantity: int | None = None
    new_pairing: bool = False
    current_employees: int | None = None
    completed_steps: list[str]


class ReturnBody(BaseModel):
    notes: str | None = Field(None, max_length=500)


class ReleaseResponse(BaseModel):
    assignment_id: UUID
    assignment: AssignmentResponse | None = None
    available_quantity: int | None = None
    affiliation_deactivated: bool
    current_employees: int | None = None
    completed_steps: list[str]


class FailedReleaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assignment_id: UUID
    error_code: str
    message: str


class RemovalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: UUID
    sponsor_id: UUID
    released: list[UUID]
    failed: list[FailedReleaseResponse]
    affiliation_status: str
    current_employees: int
