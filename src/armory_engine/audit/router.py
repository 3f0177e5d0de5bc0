"""Audit log API router."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from armory_engine.audit.models import AuditAction, EntityType
from armory_engine.audit.schemas import (
    AuditChainVerification,
    AuditFilter,
    AuditLogEntryResponse,
)
from armory_engine.common.security import Actor, authorize, require_actor
from armory_engine.deps import get_engine
from armory_engine.engine import ArmoryEngine

router = APIRouter()


@router.get("/audit", response_model=list[AuditLogEntryResponse])
async def list_audit_log(
    action: AuditAction | None = Query(None),
    entity_type: EntityType | None = Query(None),
    entity_id: str | None = Query(None),
    user_id: str | None = Query(None),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "view_audit")
    entries = await engine.list_audit_log(AuditFilter(
        action=action, entity_type=entity_type, entity_id=entity_id,
        user_id=user_id, since=since, until=until, limit=limit, offset=offset,
    ))
    return [AuditLogEntryResponse.model_validate(e) for e in entries]


@router.get(
    "/audit/{entity_type}/{entity_id}/verify",
    response_model=AuditChainVerification,
)
async def verify_audit_chain(
    entity_type: EntityType,
    entity_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "view_audit")
    async with engine.db.get_session() as session:
        result = await engine.audit.verify_chain(session, entity_type.value, entity_id)
        return AuditChainVerification(**result)
