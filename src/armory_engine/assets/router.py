"""Asset API router."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from armory_engine.assets.lifecycle import AssetStatus, AssetType
from armory_engine.assets.schemas import (
    AssetCreate,
    AssetFilter,
    AssetResponse,
    AssetUpdate,
    AssignRequest,
)
from armory_engine.common.security import Actor, authorize, require_actor
from armory_engine.deps import get_engine, page_size
from armory_engine.engine import ArmoryEngine

router = APIRouter()


async def _asset_base(engine: ArmoryEngine, asset_id: str) -> str:
    async with engine.db.get_session() as session:
        asset = await engine.assets.get_asset(session, asset_id)
        if asset is None:
            raise HTTPException(status_code=404, detail="Asset not found")
        return asset.base_id


@router.get("/assets", response_model=list[AssetResponse])
async def list_assets(
    base_id: str | None = Query(None),
    type: AssetType | None = Query(None),
    status: AssetStatus | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    if base_id is None and not actor.is_admin:
        base_id = actor.base_id
    authorize(actor, "view_assets", base_id)
    filters = AssetFilter(
        base_id=base_id, type=type, status=status,
        start_date=start_date, end_date=end_date,
        limit=page_size(engine, limit), offset=offset,
    )
    async with engine.db.get_session() as session:
        assets = await engine.assets.list_assets(session, filters)
        return [AssetResponse.model_validate(a) for a in assets]


@router.get("/assets/{asset_id}", response_model=AssetResponse)
async def get_asset(
    asset_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    async with engine.db.get_session() as session:
        asset = await engine.assets.get_asset(session, asset_id)
        if asset is None:
            raise HTTPException(status_code=404, detail="Asset not found")
        authorize(actor, "view_assets", asset.base_id)
        return AssetResponse.model_validate(asset)


@router.post("/assets", response_model=AssetResponse, status_code=201)
async def create_asset(
    body: AssetCreate,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "create_asset", body.base_id)
    result = await engine.create_asset(actor, body)
    return AssetResponse.model_validate(result.unwrap())


@router.patch("/assets/{asset_id}", response_model=AssetResponse)
async def update_asset(
    asset_id: str,
    body: AssetUpdate,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "update_asset", await _asset_base(engine, asset_id))
    result = await engine.update_asset(actor, asset_id, body.model_dump(exclude_none=True))
    return AssetResponse.model_validate(result.unwrap())


@router.post("/assets/{asset_id}/assign", response_model=AssetResponse)
async def assign_asset(
    asset_id: str,
    body: AssignRequest,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "assign_asset", await _asset_base(engine, asset_id))
    result = await engine.assign_asset(actor, asset_id, body.assigned_to_id)
    return AssetResponse.model_validate(result.unwrap())


@router.post("/assets/{asset_id}/expend", response_model=AssetResponse)
async def expend_asset(
    asset_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "expend_asset", await _asset_base(engine, asset_id))
    result = await engine.expend_asset(actor, asset_id)
    return AssetResponse.model_validate(result.unwrap())
