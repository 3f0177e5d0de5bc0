"""Pydantic schemas for base endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BaseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    location: str = Field(..., min_length=1, max_length=255)


class BaseUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, min_length=1, max_length=255)


class BaseResponse(BaseModel):
    id: str
    name: str
    location: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PurchaseTotals(BaseModel):
    total_purchases: int = 0
    total_quantity: int = 0
    total_amount: float = 0.0


class BaseStatsResponse(BaseModel):
    base_id: str
    assets: dict[str, int]
    transfers: dict[str, int]
    purchases: PurchaseTotals
