"""Base API router."""

from fastapi import APIRouter, Depends, HTTPException

from armory_engine.bases.schemas import (
    BaseCreate,
    BaseResponse,
    BaseStatsResponse,
    BaseUpdate,
)
from armory_engine.common.security import Actor, authorize, require_actor
from armory_engine.deps import get_engine
from armory_engine.engine import ArmoryEngine

router = APIRouter(prefix="/bases", tags=["bases"])


@router.post("", response_model=BaseResponse, status_code=201)
async def create_base(
    body: BaseCreate,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "manage_bases")
    result = await engine.bases.create_base(actor, body.name, body.location)
    return BaseResponse.model_validate(result.unwrap())


@router.get("", response_model=list[BaseResponse])
async def list_bases(
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "view_bases")
    async with engine.db.get_session() as session:
        bases = await engine.bases.list_bases(session)
        return [BaseResponse.model_validate(b) for b in bases]


@router.get("/{base_id}", response_model=BaseResponse)
async def get_base(
    base_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "view_bases")
    async with engine.db.get_session() as session:
        base = await engine.bases.get_base(session, base_id)
        if base is None:
            raise HTTPException(status_code=404, detail="Base not found")
        return BaseResponse.model_validate(base)


@router.patch("/{base_id}", response_model=BaseResponse)
async def update_base(
    base_id: str,
    body: BaseUpdate,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "manage_bases")
    result = await engine.bases.update_base(
        actor, base_id, **body.model_dump(exclude_none=True)
    )
    return BaseResponse.model_validate(result.unwrap())


@router.get("/{base_id}/stats", response_model=BaseStatsResponse)
async def base_stats(
    base_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "view_bases", base_id)
    async with engine.db.get_session() as session:
        stats = await engine.bases.base_stats(session, base_id)
        if stats is None:
            raise HTTPException(status_code=404, detail="Base not found")
        return BaseStatsResponse(**stats)
