"""Transfer API router."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from armory_engine.common.security import Actor, authorize, can_perform, require_actor
from armory_engine.deps import get_engine, page_size
from armory_engine.engine import ArmoryEngine
from armory_engine.transfers.models import TransferModel, TransferStatus
from armory_engine.transfers.schemas import (
    TransferCreate,
    TransferFilter,
    TransferResponse,
    TransferUpdate,
)

router = APIRouter()


async def _load(engine: ArmoryEngine, transfer_id: str) -> TransferModel:
    async with engine.db.get_session() as session:
        transfer = await engine.transfers.get_transfer(session, transfer_id)
        if transfer is None:
            raise HTTPException(status_code=404, detail="Transfer not found")
        return transfer


@router.get("/transfers", response_model=list[TransferResponse])
async def list_transfers(
    source_base_id: str | None = Query(None),
    dest_base_id: str | None = Query(None),
    status: TransferStatus | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "view_transfers")
    filters = TransferFilter(
        source_base_id=source_base_id, dest_base_id=dest_base_id, status=status,
        start_date=start_date, end_date=end_date,
        involving_base_id=None if actor.is_admin else actor.base_id,
        limit=page_size(engine, limit), offset=offset,
    )
    async with engine.db.get_session() as session:
        transfers = await engine.transfers.list_transfers(session, filters)
        return [TransferResponse.model_validate(t) for t in transfers]


@router.get("/transfers/{transfer_id}", response_model=TransferResponse)
async def get_transfer(
    transfer_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    transfer = await _load(engine, transfer_id)
    if not any(
        can_perform(actor, "view_transfers", base_id)
        for base_id in (transfer.source_base_id, transfer.dest_base_id)
    ):
        raise HTTPException(status_code=403, detail="Access denied to this base")
    return TransferResponse.model_validate(transfer)


@router.post("/transfers", response_model=TransferResponse, status_code=201)
async def initiate_transfer(
    body: TransferCreate,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "initiate_transfer", body.source_base_id)
    result = await engine.initiate_transfer(
        actor, body.asset_id, body.source_base_id, body.dest_base_id,
        body.transfer_date, body.notes,
    )
    return TransferResponse.model_validate(result.unwrap())


@router.patch("/transfers/{transfer_id}", response_model=TransferResponse)
async def update_transfer(
    transfer_id: str,
    body: TransferUpdate,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    transfer = await _load(engine, transfer_id)
    authorize(actor, "update_transfer", transfer.source_base_id)
    result = await engine.transfers.update(
        actor, transfer_id, **body.model_dump(exclude_none=True),
    )
    return TransferResponse.model_validate(result.unwrap())


@router.post("/transfers/{transfer_id}/complete", response_model=TransferResponse)
async def complete_transfer(
    transfer_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    transfer = await _load(engine, transfer_id)
    authorize(actor, "complete_transfer", transfer.dest_base_id)
    result = await engine.complete_transfer(actor, transfer_id)
    return TransferResponse.model_validate(result.unwrap())


@router.post("/transfers/{transfer_id}/approve", response_model=TransferResponse)
async def approve_transfer(
    transfer_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    transfer = await _load(engine, transfer_id)
    authorize(actor, "approve_transfer", transfer.dest_base_id)
    result = await engine.approve_transfer(actor, transfer_id)
    return TransferResponse.model_validate(result.unwrap())


@router.post("/transfers/{transfer_id}/reject", response_model=TransferResponse)
async def reject_transfer(
    transfer_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    transfer = await _load(engine, transfer_id)
    authorize(actor, "reject_transfer", transfer.dest_base_id)
    result = await engine.reject_transfer(actor, transfer_id)
    return TransferResponse.model_validate(result.unwrap())
