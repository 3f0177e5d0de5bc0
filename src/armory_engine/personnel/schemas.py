"""Pydantic schemas for personnel endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from armory_engine.personnel.models import Role


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    role: Role
    base_id: Optional[str] = None
    first_name: str = ""
    last_name: str = ""


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    base_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
