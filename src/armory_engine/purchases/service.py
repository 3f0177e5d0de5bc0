"""Purchase workflow: procurement records and the asset batches they create.

A purchase and every asset it procures commit together. If any asset in the
batch cannot be created, the purchase row is rolled back with it.
"""

import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError as SchemaError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from armory_engine.assets.registry import AssetRegistry
from armory_engine.assets.schemas import AssetSpec
from armory_engine.audit.models import AuditAction, EntityType
from armory_engine.audit.service import AuditService
from armory_engine.bases.models import MilitaryBaseModel
from armory_engine.common.config import ArmorySettings
from armory_engine.common.database import DatabaseManager
from armory_engine.common.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from armory_engine.common.results import Err, Ok, Result
from armory_engine.common.security import Actor
from armory_engine.purchases.models import PurchaseModel, PurchaseStatus
from armory_engine.purchases.schemas import PurchaseFilter

logger = logging.getLogger(__name__)


class PurchaseWorkflow:
    """Create, approve and reject purchases."""

    def __init__(
        self,
        db: DatabaseManager,
        registry: AssetRegistry,
        audit: AuditService,
        settings: ArmorySettings,
    ):
        self.db = db
        self.registry = registry
        self.audit = audit
        self.settings = settings

    async def create(
        self,
        actor: Actor,
        date: datetime,
        quantity: int,
        unit_price: float,
        base_id: str,
        asset_specs: list[AssetSpec | dict],
    ) -> Result[PurchaseModel]:
        """Record a purchase and create one AVAILABLE asset per spec.

        ``quantity`` is the declared unit count and is independent of the
        number of specs unless ``strict_purchase_quantity`` is enabled.
        """
        checked = self._validate(date, quantity, unit_price, base_id, asset_specs)
        if not checked.ok:
            return checked
        specs = checked.value
        total_amount = quantity * unit_price

        async def _step(session: AsyncSession) -> Result[PurchaseModel]:
            if await session.get(MilitaryBaseModel, base_id) is None:
                return Err(NotFoundError(f"Base {base_id} not found"))

            purchase = PurchaseModel(
                date=date,
                quantity=quantity,
                unit_price=unit_price,
                total_amount=total_amount,
                base_id=base_id,
                status=PurchaseStatus.PENDING.value,
                assets=[],
            )
            session.add(purchase)
            await session.flush()

            for spec in specs:
                created = await self.registry.insert(
                    session, spec, base_id, purchase_id=purchase.id,
                )
                if not created.ok:
                    return created
                purchase.assets.append(created.value)

            await self.audit.append(
                session, AuditAction.PURCHASE, EntityType.PURCHASE, purchase.id, actor.id,
                {
                    "quantity": quantity,
                    "unit_price": unit_price,
                    "total_amount": total_amount,
                    "base_id": base_id,
                    "asset_count": len(specs),
                },
            )
            return Ok(purchase)

        result = await self.db.run_in_transaction(_step, label="purchases.create")
        if result.ok:
            logger.info(
                "Purchase %s created at base %s with %d assets",
                result.value.id, base_id, len(specs),
            )
        return result

    async def approve(self, actor: Actor, purchase_id: str) -> Result[PurchaseModel]:
        return await self._decide(
            actor, purchase_id, PurchaseStatus.APPROVED, AuditAction.PURCHASE_APPROVE,
        )

    async def reject(self, actor: Actor, purchase_id: str) -> Result[PurchaseModel]:
        return await self._decide(
            actor, purchase_id, PurchaseStatus.REJECTED, AuditAction.PURCHASE_REJECT,
        )

    # ── Read ──

    async def get_purchase(
        self, session: AsyncSession, purchase_id: str,
    ) -> PurchaseModel | None:
        result = await session.execute(
            select(PurchaseModel)
            .where(PurchaseModel.id == purchase_id)
            .options(selectinload(PurchaseModel.assets))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_purchases(
        self, session: AsyncSession, filters: PurchaseFilter | None = None,
    ) -> list[PurchaseModel]:
        filters = filters or PurchaseFilter()
        query = self._filtered(select(PurchaseModel), filters)
        result = await session.execute(
            query.options(selectinload(PurchaseModel.assets))
            .order_by(PurchaseModel.date.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        return list(result.scalars().all())

    async def summary(
        self, session: AsyncSession, filters: PurchaseFilter | None = None,
    ) -> dict[str, Any]:
        query = self._filtered(
            select(
                func.count(PurchaseModel.id),
                func.coalesce(func.sum(PurchaseModel.quantity), 0),
                func.coalesce(func.sum(PurchaseModel.total_amount), 0.0),
            ),
            filters or PurchaseFilter(),
        )
        count, quantity, amount = (await session.execute(query)).one()
        return {
            "total_purchases": count,
            "total_quantity": int(quantity),
            "total_amount": float(amount),
        }

    # ── Internal helpers ──

    def _validate(
        self,
        date: datetime,
        quantity: int,
        unit_price: float,
        base_id: str,
        asset_specs: list[AssetSpec | dict],
    ) -> Result[list[AssetSpec]]:
        if not isinstance(date, datetime):
            return Err(ValidationError("Purchase date must be a datetime"))
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            return Err(ValidationError("Quantity must be at least 1"))
        if isinstance(unit_price, bool) or not isinstance(unit_price, (int, float)) or unit_price < 0:
            return Err(ValidationError("Unit price must be zero or positive"))
        if not base_id:
            return Err(ValidationError("Base is required"))
        if asset_specs is None:
            return Err(ValidationError("Assets must be a list"))

        specs = []
        for index, raw in enumerate(asset_specs):
            try:
                specs.append(AssetSpec.model_validate(raw))
            except SchemaError as exc:
                first = exc.errors()[0]
                field = ".".join(str(part) for part in first["loc"])
                return Err(ValidationError(f"assets[{index}].{field}: {first['msg']}"))

        if self.settings.strict_purchase_quantity and quantity != len(specs):
            return Err(ValidationError(
                f"Quantity {quantity} does not match {len(specs)} asset entries"
            ))
        return Ok(specs)

    async def _get_for_update(
        self, session: AsyncSession, purchase_id: str,
    ) -> PurchaseModel | None:
        return await session.get(PurchaseModel, purchase_id, with_for_update=True)

    @staticmethod
    def _filtered(query, filters: PurchaseFilter):
        if filters.base_id:
            query = query.where(PurchaseModel.base_id == filters.base_id)
        if filters.status is not None:
            query = query.where(PurchaseModel.status == filters.status.value)
        if filters.start_date is not None:
            query = query.where(PurchaseModel.date >= filters.start_date)
        if filters.end_date is not None:
            query = query.where(PurchaseModel.date <= filters.end_date)
        return query

    async def _decide(
        self,
        actor: Actor,
        purchase_id: str,
        status: PurchaseStatus,
        action: AuditAction,
    ) -> Result[PurchaseModel]:
        """PENDING → APPROVED/REJECTED. Procured assets are not touched."""
        async def _step(session: AsyncSession) -> Result[PurchaseModel]:
            purchase = await self._get_for_update(session, purchase_id)
            if purchase is None:
                return Err(NotFoundError(f"Purchase {purchase_id} not found"))
            if purchase.status != PurchaseStatus.PENDING.value:
                return Err(InvalidStateError(
                    f"Cannot {status.value.lower()} purchase in {purchase.status} status"
                ))
            result = await session.execute(
                update(PurchaseModel)
                .where(
                    PurchaseModel.id == purchase_id,
                    PurchaseModel.status == PurchaseStatus.PENDING.value,
                )
                .values(status=status.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return Err(InvalidStateError(f"Purchase {purchase_id} is no longer pending"))

            await self.audit.append(
                session, action, EntityType.PURCHASE, purchase_id, actor.id,
                {"status": status.value},
            )
            return Ok(await self.get_purchase(session, purchase_id))

        result = await self.db.run_in_transaction(
            _step, label=f"purchases.{status.value.lower()}",
        )
        if result.ok:
            logger.info("Purchase %s %s", purchase_id, status.value.lower())
        return result
