"""Pydantic schemas for audit log queries and responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from armory_engine.audit.models import AuditAction, EntityType


class AuditFilter(BaseModel):
    action: Optional[AuditAction] = None
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class AuditLogEntryResponse(BaseModel):
    id: str
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, Any] = {}
    sequence: int
    prev_hash: Optional[str] = None
    entry_hash: str
    signature: str
    timestamp: datetime = Field(validation_alias="created_at")

    model_config = {"from_attributes": True, "populate_by_name": True}


class AuditChainVerification(BaseModel):
    valid: bool
    entries_checked: int
    break_at: Optional[str] = None
