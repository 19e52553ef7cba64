"""Directory Schemas — sponsor/member registration, subscription and capacity views."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assetverse.core.domain_types import Subscription

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class MemberCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(max_length=320, pattern=_EMAIL_PATTERN)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class SponsorCreate(MemberCreate):
    company_name: str = Field("", max_length=200)
    subscription: Subscription = Subscription.FREE
    package_limit: int | None = Field(None, ge=0)


class SubscriptionUpdate(BaseModel):
    subscription: Subscription
    package_limit: int = Field(ge=0)


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    created_at: datetime


class SponsorResponse(MemberResponse):
    company_name: str
    subscription: Subscription
    package_limit: int
    current_employees: int
    subscription_date: datetime | None = None


class CapacityResponse(BaseModel):
    sponsor_id: UUID
    subscription: Subscription
    package_limit: int
    active_members: int
    current_employees: int
    remaining: int
    can_add: bool
    in_sync: bool


class ActiveMemberResponse(BaseModel):
    member_id: UUID
    name: str
    email: str
    joined_at: datetime
    last_update: datetime
    outstanding_loans: int


class MemberAffiliationResponse(BaseModel):
    sponsor_id: UUID
    sponsor_name: str
    company_name: str
    joined_at: datetime
    last_update: datetime


class TeammateResponse(BaseModel):
    sponsor_id: UUID
    member_id: UUID
    name: str
    email: str
    joined_at: datetime
