"""Pydantic schemas for purchase endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from armory_engine.assets.schemas import AssetResponse, AssetSpec
from armory_engine.purchases.models import PurchaseStatus


class PurchaseCreate(BaseModel):
    date: datetime
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., ge=0)
    base_id: str = Field(..., min_length=1)
    assets: list[AssetSpec] = Field(default_factory=list)


class PurchaseFilter(BaseModel):
    base_id: Optional[str] = None
    status: Optional[PurchaseStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)


class PurchaseResponse(BaseModel):
    id: str
    date: datetime
    quantity: int
    unit_price: float
    total_amount: float
    base_id: str
    status: str
    assets: list[AssetResponse] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class PurchaseSummary(BaseModel):
    total_purchases: int
    total_quantity: int
    total_amount: float
