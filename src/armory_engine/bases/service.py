"""Base administration and per-base statistics."""

import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from armory_engine.assets.models import AssetModel
from armory_engine.audit.models import AuditAction, EntityType
from armory_engine.audit.service import AuditService
from armory_engine.bases.models import MilitaryBaseModel
from armory_engine.common.database import DatabaseManager
from armory_engine.common.exceptions import NotFoundError, ValidationError
from armory_engine.common.results import Err, Ok, Result
from armory_engine.common.security import Actor
from armory_engine.purchases.models import PurchaseModel
from armory_engine.transfers.models import TransferModel

logger = logging.getLogger(__name__)


class BaseService:
    """Create, edit and report on bases."""

    def __init__(self, db: DatabaseManager, audit: AuditService):
        self.db = db
        self.audit = audit

    async def create_base(
        self, actor: Actor, name: str, location: str,
    ) -> Result[MilitaryBaseModel]:
        name, location = (name or "").strip(), (location or "").strip()
        if not name:
            return Err(ValidationError("Base name is required"))
        if not location:
            return Err(ValidationError("Location is required"))

        async def _step(session: AsyncSession) -> Result[MilitaryBaseModel]:
            base = MilitaryBaseModel(name=name, location=location)
            session.add(base)
            await session.flush()
            await self.audit.append(
                session, AuditAction.CREATE, EntityType.BASE, base.id, actor.id,
                {"name": name, "location": location},
            )
            return Ok(base)

        result = await self.db.run_in_transaction(_step, label="bases.create")
        if result.ok:
            logger.info("Base %s created", result.value.id)
        return result

    async def update_base(
        self, actor: Actor, base_id: str, **updates: Any,
    ) -> Result[MilitaryBaseModel]:
        changes = {
            field: str(updates[field]).strip()
            for field in ("name", "location")
            if updates.get(field) is not None
        }
        if any(not value for value in changes.values()):
            return Err(ValidationError("Base name and location cannot be blank"))

        async def _step(session: AsyncSession) -> Result[MilitaryBaseModel]:
            base = await session.get(MilitaryBaseModel, base_id)
            if base is None:
                return Err(NotFoundError(f"Base {base_id} not found"))
            for field, value in changes.items():
                setattr(base, field, value)
            await session.flush()
            await self.audit.append(
                session, AuditAction.UPDATE, EntityType.BASE, base.id, actor.id, changes,
            )
            return Ok(base)

        return await self.db.run_in_transaction(_step, label="bases.update")

    # ── Read ──

    async def get_base(
        self, session: AsyncSession, base_id: str,
    ) -> MilitaryBaseModel | None:
        return await session.get(MilitaryBaseModel, base_id)

    async def list_bases(self, session: AsyncSession) -> list[MilitaryBaseModel]:
        result = await session.execute(
            select(MilitaryBaseModel).order_by(MilitaryBaseModel.name)
        )
        return list(result.scalars().all())

    async def base_stats(
        self, session: AsyncSession, base_id: str,
    ) -> dict[str, Any] | None:
        """Asset counts by status, transfer counts by status, purchase totals."""
        if await self.get_base(session, base_id) is None:
            return None

        assets = await session.execute(
            select(AssetModel.status, func.count(AssetModel.id))
            .where(AssetModel.base_id == base_id)
            .group_by(AssetModel.status)
        )
        transfers = await session.execute(
            select(TransferModel.status, func.count(TransferModel.id))
            .where(or_(
                TransferModel.source_base_id == base_id,
                TransferModel.dest_base_id == base_id,
            ))
            .group_by(TransferModel.status)
        )
        purchases = await session.execute(
            select(
                func.count(PurchaseModel.id),
                func.coalesce(func.sum(PurchaseModel.quantity), 0),
                func.coalesce(func.sum(PurchaseModel.total_amount), 0.0),
            ).where(PurchaseModel.base_id == base_id)
        )
        count, quantity, amount = purchases.one()
        return {
            "base_id": base_id,
            "assets": {status: n for status, n in assets.all()},
            "transfers": {status: n for status, n in transfers.all()},
            "purchases": {
                "total_purchases": count,
                "total_quantity": int(quantity),
                "total_amount": float(amount),
            },
        }
