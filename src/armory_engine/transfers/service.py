"""Transfer workflow: two-phase relocation of an asset between bases.

LIFECYCLE:
1. initiate: Transfer PENDING, asset IN_TRANSIT and already booked at the
   destination base. In-transit assets report at their destination.
2. complete / approve: Transfer COMPLETED, asset AVAILABLE.
3. reject: Transfer REJECTED. The asset is left as it is.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from armory_engine.assets.lifecycle import (
    TRANSFER_COMPLETE,
    TRANSFER_INITIATE,
    AssetStatus,
)
from armory_engine.assets.registry import AssetRegistry
from armory_engine.audit.models import AuditAction, EntityType
from armory_engine.audit.service import AuditService
from armory_engine.bases.models import MilitaryBaseModel
from armory_engine.common.database import DatabaseManager
from armory_engine.common.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from armory_engine.common.results import Err, Ok, Result
from armory_engine.common.security import Actor
from armory_engine.transfers.models import TransferModel, TransferStatus
from armory_engine.transfers.schemas import TransferFilter

logger = logging.getLogger(__name__)


class TransferWorkflow:
    """Initiate, complete, approve and reject transfers."""

    def __init__(self, db: DatabaseManager, registry: AssetRegistry, audit: AuditService):
        self.db = db
        self.registry = registry
        self.audit = audit

    async def initiate(
        self,
        actor: Actor,
        asset_id: str,
        source_base_id: str,
        dest_base_id: str,
        transfer_date: datetime,
        notes: str | None = None,
    ) -> Result[TransferModel]:
        if not (asset_id and source_base_id and dest_base_id):
            return Err(ValidationError("Asset, source base and destination base are required"))
        if source_base_id == dest_base_id:
            return Err(ValidationError("Cannot transfer to the same base"))
        if not isinstance(transfer_date, datetime):
            return Err(ValidationError("Transfer date must be a datetime"))

        async def _step(session: AsyncSession) -> Result[TransferModel]:
            asset = await self.registry.get_for_update(session, asset_id)
            if asset is None:
                return Err(NotFoundError(f"Asset {asset_id} not found"))
            if await session.get(MilitaryBaseModel, dest_base_id) is None:
                return Err(NotFoundError(f"Base {dest_base_id} not found"))
            if asset.status != AssetStatus.AVAILABLE.value:
                return Err(InvalidStateError(
                    f"Asset is not available for transfer (status {asset.status})"
                ))
            if asset.base_id != source_base_id:
                return Err(InvalidStateError(
                    f"Asset {asset_id} is not located at base {source_base_id}"
                ))

            transfer = TransferModel(
                asset_id=asset_id,
                source_base_id=source_base_id,
                dest_base_id=dest_base_id,
                transfer_date=transfer_date,
                status=TransferStatus.PENDING.value,
                notes=notes or "",
            )
            session.add(transfer)
            await session.flush()

            moved = await self.registry.transition(
                session, asset_id, TRANSFER_INITIATE, role=actor.role,
                base_id=dest_base_id,
            )
            if not moved.ok:
                return moved

            await self.audit.append(
                session, AuditAction.TRANSFER, EntityType.ASSET, asset_id, actor.id,
                {
                    "transfer_id": transfer.id,
                    "source_base_id": source_base_id,
                    "dest_base_id": dest_base_id,
                    "transfer_date": transfer_date,
                },
            )
            return Ok(transfer)

        result = await self.db.run_in_transaction(_step, label="transfers.initiate")
        if result.ok:
            logger.info(
                "Transfer %s initiated: asset %s %s -> %s",
                result.value.id, asset_id, source_base_id, dest_base_id,
            )
        return result

    async def complete(self, actor: Actor, transfer_id: str) -> Result[TransferModel]:
        return await self._finish(actor, transfer_id, AuditAction.TRANSFER_COMPLETE)

    async def approve(self, actor: Actor, transfer_id: str) -> Result[TransferModel]:
        """Approval closes the transfer exactly like ``complete``."""
        return await self._finish(actor, transfer_id, AuditAction.TRANSFER_APPROVE)

    async def reject(self, actor: Actor, transfer_id: str) -> Result[TransferModel]:
        """PENDING → REJECTED on the transfer only."""
        async def _step(session: AsyncSession) -> Result[TransferModel]:
            transfer = await self._get_for_update(session, transfer_id)
            if transfer is None:
                return Err(NotFoundError(f"Transfer {transfer_id} not found"))
            moved = await self._set_status(session, transfer, TransferStatus.REJECTED)
            if not moved.ok:
                return moved
            await self.audit.append(
                session, AuditAction.TRANSFER_REJECT, EntityType.TRANSFER, transfer.id,
                actor.id, {"status": TransferStatus.REJECTED.value, "asset_id": transfer.asset_id},
            )
            return moved

        result = await self.db.run_in_transaction(_step, label="transfers.reject")
        if result.ok:
            logger.info("Transfer %s rejected", transfer_id)
        return result

    async def update(
        self, actor: Actor, transfer_id: str, **updates: Any,
    ) -> Result[TransferModel]:
        """Edit notes or date of a transfer that is still PENDING."""
        unknown = sorted(set(updates) - {"notes", "transfer_date"})
        if unknown:
            return Err(ValidationError(
                f"Fields cannot be updated directly: {', '.join(unknown)}"
            ))
        changes = {k: v for k, v in updates.items() if v is not None}
        if not changes:
            return Err(ValidationError("No fields to update"))

        async def _step(session: AsyncSession) -> Result[TransferModel]:
            transfer = await self._get_for_update(session, transfer_id)
            if transfer is None:
                return Err(NotFoundError(f"Transfer {transfer_id} not found"))
            if transfer.status != TransferStatus.PENDING.value:
                return Err(InvalidStateError(
                    f"Cannot edit transfer in {transfer.status} status"
                ))
            for field, value in changes.items():
                setattr(transfer, field, value)
            await session.flush()
            await self.audit.append(
                session, AuditAction.UPDATE, EntityType.TRANSFER, transfer.id,
                actor.id, changes,
            )
            return Ok(transfer)

        return await self.db.run_in_transaction(_step, label="transfers.update")

    # ── Read ──

    async def get_transfer(
        self, session: AsyncSession, transfer_id: str,
    ) -> TransferModel | None:
        return await session.get(TransferModel, transfer_id)

    async def list_transfers(
        self, session: AsyncSession, filters: TransferFilter | None = None,
    ) -> list[TransferModel]:
        filters = filters or TransferFilter()
        query = select(TransferModel)
        if filters.source_base_id:
            query = query.where(TransferModel.source_base_id == filters.source_base_id)
        if filters.dest_base_id:
            query = query.where(TransferModel.dest_base_id == filters.dest_base_id)
        if filters.asset_id:
            query = query.where(TransferModel.asset_id == filters.asset_id)
        if filters.involving_base_id:
            query = query.where(or_(
                TransferModel.source_base_id == filters.involving_base_id,
                TransferModel.dest_base_id == filters.involving_base_id,
            ))
        if filters.status is not None:
            query = query.where(TransferModel.status == filters.status.value)
        if filters.start_date is not None:
            query = query.where(TransferModel.transfer_date >= filters.start_date)
        if filters.end_date is not None:
            query = query.where(TransferModel.transfer_date <= filters.end_date)
        result = await session.execute(
            query.order_by(TransferModel.transfer_date.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        return list(result.scalars().all())

    # ── Internal helpers ──

    async def _finish(
        self, actor: Actor, transfer_id: str, action: AuditAction,
    ) -> Result[TransferModel]:
        async def _step(session: AsyncSession) -> Result[TransferModel]:
            transfer = await self._get_for_update(session, transfer_id)
            if transfer is None:
                return Err(NotFoundError(f"Transfer {transfer_id} not found"))
            closed = await self._set_status(session, transfer, TransferStatus.COMPLETED)
            if not closed.ok:
                return closed

            moved = await self.registry.transition(
                session, transfer.asset_id, TRANSFER_COMPLETE, role=actor.role,
            )
            if not moved.ok:
                return moved

            await self.audit.append(
                session, action, EntityType.TRANSFER, transfer.id, actor.id,
                {"status": TransferStatus.COMPLETED.value, "asset_id": transfer.asset_id},
            )
            return closed

        result = await self.db.run_in_transaction(_step, label=f"transfers.{action.value.lower()}")
        if result.ok:
            logger.info("Transfer %s closed by %s", transfer_id, action.value)
        return result

    async def _get_for_update(
        self, session: AsyncSession, transfer_id: str,
    ) -> TransferModel | None:
        result = await session.execute(
            select(TransferModel).where(TransferModel.id == transfer_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def _set_status(
        self, session: AsyncSession, transfer: TransferModel, status: TransferStatus,
    ) -> Result[TransferModel]:
        """Move a PENDING transfer to ``status`` with a compare-and-set update."""
        if transfer.status != TransferStatus.PENDING.value:
            return Err(InvalidStateError(
                f"Transfer is not pending (status {transfer.status})"
            ))
        result = await session.execute(
            update(TransferModel)
            .where(
                TransferModel.id == transfer.id,
                TransferModel.status == TransferStatus.PENDING.value,
            )
            .values(status=status.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return Err(InvalidStateError(f"Transfer {transfer.id} is no longer pending"))
        await session.refresh(transfer)
        return Ok(transfer)
