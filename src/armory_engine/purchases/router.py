"""Purchase API router."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from armory_engine.common.security import Actor, authorize, require_actor
from armory_engine.deps import get_engine, page_size
from armory_engine.engine import ArmoryEngine
from armory_engine.purchases.models import PurchaseStatus
from armory_engine.purchases.schemas import (
    PurchaseCreate,
    PurchaseFilter,
    PurchaseResponse,
    PurchaseSummary,
)

router = APIRouter()


def _scoped_filter(
    actor: Actor,
    base_id: str | None,
    status: PurchaseStatus | None,
    start_date: datetime | None,
    end_date: datetime | None,
) -> PurchaseFilter:
    if base_id is None and not actor.is_admin:
        base_id = actor.base_id
    return PurchaseFilter(
        base_id=base_id, status=status, start_date=start_date, end_date=end_date,
    )


@router.get("/purchases", response_model=list[PurchaseResponse])
async def list_purchases(
    base_id: str | None = Query(None),
    status: PurchaseStatus | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    filters = _scoped_filter(actor, base_id, status, start_date, end_date)
    filters.limit, filters.offset = page_size(engine, limit), offset
    authorize(actor, "view_purchases", filters.base_id)
    async with engine.db.get_session() as session:
        purchases = await engine.purchases.list_purchases(session, filters)
        return [PurchaseResponse.model_validate(p) for p in purchases]


@router.get("/purchases/summary", response_model=PurchaseSummary)
async def purchase_summary(
    base_id: str | None = Query(None),
    status: PurchaseStatus | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    filters = _scoped_filter(actor, base_id, status, start_date, end_date)
    authorize(actor, "purchase_summary", filters.base_id)
    async with engine.db.get_session() as session:
        return PurchaseSummary(**await engine.purchases.summary(session, filters))


@router.get("/purchases/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(
    purchase_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    async with engine.db.get_session() as session:
        purchase = await engine.purchases.get_purchase(session, purchase_id)
        if purchase is None:
            raise HTTPException(status_code=404, detail="Purchase not found")
        authorize(actor, "view_purchases", purchase.base_id)
        return PurchaseResponse.model_validate(purchase)


@router.post("/purchases", response_model=PurchaseResponse, status_code=201)
async def create_purchase(
    body: PurchaseCreate,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "create_purchase", body.base_id)
    result = await engine.create_purchase(
        actor, body.date, body.quantity, body.unit_price, body.base_id, body.assets,
    )
    return PurchaseResponse.model_validate(result.unwrap())


async def _purchase_base(engine: ArmoryEngine, purchase_id: str) -> str:
    async with engine.db.get_session() as session:
        purchase = await engine.purchases.get_purchase(session, purchase_id)
        if purchase is None:
            raise HTTPException(status_code=404, detail="Purchase not found")
        return purchase.base_id


@router.post("/purchases/{purchase_id}/approve", response_model=PurchaseResponse)
async def approve_purchase(
    purchase_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "approve_purchase", await _purchase_base(engine, purchase_id))
    result = await engine.approve_purchase(actor, purchase_id)
    return PurchaseResponse.model_validate(result.unwrap())


@router.post("/purchases/{purchase_id}/reject", response_model=PurchaseResponse)
async def reject_purchase(
    purchase_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "reject_purchase", await _purchase_base(engine, purchase_id))
    result = await engine.reject_purchase(actor, purchase_id)
    return PurchaseResponse.model_validate(result.unwrap())
