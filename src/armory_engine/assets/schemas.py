"""Pydantic schemas for asset endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from armory_engine.assets.lifecycle import AssetStatus, AssetType


class AssetSpec(BaseModel):
    """One asset to create, either alone or as part of a purchase batch."""
    model_config = ConfigDict(str_strip_whitespace=True)

    serial_number: str = Field(..., min_length=1, max_length=100)
    type: AssetType
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""


class AssetCreate(AssetSpec):
    base_id: str


class AssetUpdate(BaseModel):
    """Administrative correction. Lifecycle fields are not accepted here."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[AssetType] = None


class AssignRequest(BaseModel):
    assigned_to_id: str = Field(..., min_length=1)


class AssetFilter(BaseModel):
    base_id: Optional[str] = None
    type: Optional[AssetType] = None
    status: Optional[AssetStatus] = None
    purchase_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)


class AssetResponse(BaseModel):
    id: str
    serial_number: str
    type: str
    name: str
    description: str
    status: str
    base_id: str
    assigned_to_id: Optional[str] = None
    purchase_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
