"""Pydantic schemas for transfer endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from armory_engine.transfers.models import TransferStatus


class TransferCreate(BaseModel):
    asset_id: str = Field(..., min_length=1)
    source_base_id: str = Field(..., min_length=1)
    dest_base_id: str = Field(..., min_length=1)
    transfer_date: datetime
    notes: str = ""


class TransferUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    transfer_date: Optional[datetime] = None
    notes: Optional[str] = None


class TransferFilter(BaseModel):
    source_base_id: Optional[str] = None
    dest_base_id: Optional[str] = None
    asset_id: Optional[str] = None
    involving_base_id: Optional[str] = None  # source or destination
    status: Optional[TransferStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)


class TransferResponse(BaseModel):
    id: str
    asset_id: str
    source_base_id: str
    dest_base_id: str
    transfer_date: datetime
    status: str
    notes: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
