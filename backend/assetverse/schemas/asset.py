"""Asset Schemas — catalog input validation and asset views.

Invariants:
    - AssetCreate.name: 1-200 chars, stripped, non-empty
    - Quantities are non-negative integers
    - AssetUpdate requires at least one field
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from assetverse.core.domain_types import AssetType


def _strip_name(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("name cannot be empty or whitespace")
    return v


class AssetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    asset_type: AssetType = AssetType.RETURNABLE
    total_quantity: int = Field(ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class AssetUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    asset_type: AssetType | None = None
    total_quantity: int | None = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return _strip_name(v)

    @model_validator(mode="after")
    def require_change(self):
        if self.name is None and self.asset_type is None and self.total_quantity is None:
            raise ValueError("at least one of name, asset_type, total_quantity is required")
        return self


class AssetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sponsor_id: UUID
    name: str
    asset_type: AssetType
    total_quantity: int
    available_quantity: int
    created_at: datetime
    updated_at: datetime | None = None


class AssetDetailResponse(AssetResponse):
    """Single-asset read; `drift` names a counter anomaly healed on this read."""
    drift: str | None = None


class StockSummary(BaseModel):
    total_assets: int
    total_units: int
    total_available: int
    low_stock: int


class AssetListResponse(BaseModel):
    assets: list[AssetResponse]
    page: int
    limit: int
    total: int
    total_pages: int
    summary: StockSummary


class DirectAssignBody(BaseModel):
    member_id: UUID


class AssetTypeCount(BaseModel):
    asset_type: AssetType
    count: int


class RequestedAsset(BaseModel):
    asset_id: UUID
    name: str
    request_count: int


class AssetAnalyticsResponse(BaseModel):
    type_distribution: list[AssetTypeCount]
    top_requested: list[RequestedAsset]
