"""Asset registry: owns asset rows and applies lifecycle transitions."""

import logging
from typing import Any

from pydantic import ValidationError as SchemaError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from armory_engine.assets.lifecycle import (
    ASSIGN,
    EXPEND,
    INITIAL_STATUS,
    Transition,
    check_transition,
)
from armory_engine.assets.models import AssetModel
from armory_engine.assets.schemas import AssetCreate, AssetFilter, AssetSpec, AssetUpdate
from armory_engine.audit.models import AuditAction, EntityType
from armory_engine.audit.service import AuditService
from armory_engine.bases.models import MilitaryBaseModel
from armory_engine.common.database import DatabaseManager
from armory_engine.common.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from armory_engine.common.results import Err, Ok, Result
from armory_engine.common.security import Actor
from armory_engine.personnel.models import UserModel

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "description", "type"})


def _schema_error(exc: SchemaError) -> ValidationError:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return ValidationError(f"{location}: {first['msg']}")


class AssetRegistry:
    """Asset lifecycle operations.

    Session-level primitives (``get_for_update``, ``insert``, ``transition``)
    run inside a transaction opened by a caller. The actor-facing operations
    open their own transaction and write exactly one audit entry each.
    """

    def __init__(self, db: DatabaseManager, audit: AuditService):
        self.db = db
        self.audit = audit

    # ── Primitives ──

    async def get_for_update(
        self, session: AsyncSession, asset_id: str,
    ) -> AssetModel | None:
        """Read an asset under a row lock where the store supports one."""
        result = await session.execute(
            select(AssetModel).where(AssetModel.id == asset_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def insert(
        self,
        session: AsyncSession,
        spec: AssetSpec | dict,
        base_id: str,
        purchase_id: str | None = None,
    ) -> Result[AssetModel]:
        """Create one AVAILABLE asset. Does not audit."""
        try:
            spec = AssetSpec.model_validate(spec)
        except SchemaError as exc:
            return Err(_schema_error(exc))

        duplicate = await session.execute(
            select(AssetModel.id).where(AssetModel.serial_number == spec.serial_number)
        )
        if duplicate.first() is not None:
            return Err(ConflictError(
                f"Asset with serial number '{spec.serial_number}' already exists"
            ))

        asset = AssetModel(
            serial_number=spec.serial_number,
            type=spec.type.value,
            name=spec.name,
            description=spec.description,
            status=INITIAL_STATUS.value,
            base_id=base_id,
            purchase_id=purchase_id,
        )
        session.add(asset)
        await session.flush()
        return Ok(asset)

    async def transition(
        self,
        session: AsyncSession,
        asset_id: str,
        transition: Transition,
        role: str | None = None,
        **params: Any,
    ) -> Result[AssetModel]:
        """Apply one lifecycle transition. Does not audit.

        The guard is re-checked by the UPDATE itself: if another transaction
        moved the asset out of the allowed states, no row matches and the
        transition fails without writing.
        """
        asset = await self.get_for_update(session, asset_id)
        if asset is None:
            return Err(NotFoundError(f"Asset {asset_id} not found"))

        checked = check_transition(transition, asset.status, role=role, params=params)
        if not checked.ok:
            return checked

        result = await session.execute(
            update(AssetModel)
            .where(
                AssetModel.id == asset_id,
                AssetModel.status.in_([s.value for s in transition.from_states]),
            )
            .values(**checked.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return Err(InvalidStateError(
                f"Asset {asset_id} changed state before {transition.name} could apply"
            ))
        await session.refresh(asset)
        return Ok(asset)

    # ── Operations ──

    async def create_asset(
        self, actor: Actor, spec: AssetCreate | dict,
    ) -> Result[AssetModel]:
        try:
            spec = AssetCreate.model_validate(spec)
        except SchemaError as exc:
            return Err(_schema_error(exc))

        async def _step(session: AsyncSession) -> Result[AssetModel]:
            if await session.get(MilitaryBaseModel, spec.base_id) is None:
                return Err(NotFoundError(f"Base {spec.base_id} not found"))
            created = await self.insert(session, spec, spec.base_id)
            if not created.ok:
                return created
            asset = created.value
            await self.audit.append(
                session, AuditAction.CREATE, EntityType.ASSET, asset.id, actor.id,
                spec.model_dump(mode="json"),
            )
            return created

        result = await self.db.run_in_transaction(_step, label="assets.create")
        if result.ok:
            logger.info("Asset %s created at base %s", result.value.id, spec.base_id)
        return result

    async def assign_asset(
        self, actor: Actor, asset_id: str, user_id: str,
    ) -> Result[AssetModel]:
        async def _step(session: AsyncSession) -> Result[AssetModel]:
            if user_id and await session.get(UserModel, user_id) is None:
                return Err(NotFoundError(f"User {user_id} not found"))
            moved = await self.transition(
                session, asset_id, ASSIGN, role=actor.role, assigned_to_id=user_id,
            )
            if not moved.ok:
                return moved
            await self.audit.append(
                session, AuditAction.ASSIGN, EntityType.ASSET, asset_id, actor.id,
                {"assigned_to_id": user_id},
            )
            return moved

        result = await self.db.run_in_transaction(_step, label="assets.assign")
        if result.ok:
            logger.info("Asset %s assigned to %s", asset_id, user_id)
        return result

    async def expend_asset(self, actor: Actor, asset_id: str) -> Result[AssetModel]:
        async def _step(session: AsyncSession) -> Result[AssetModel]:
            asset = await self.get_for_update(session, asset_id)
            previous = asset.status if asset is not None else None
            moved = await self.transition(session, asset_id, EXPEND, role=actor.role)
            if not moved.ok:
                return moved
            await self.audit.append(
                session, AuditAction.EXPEND, EntityType.ASSET, asset_id, actor.id,
                {"previous_status": previous, "status": moved.value.status},
            )
            return moved

        result = await self.db.run_in_transaction(_step, label="assets.expend")
        if result.ok:
            logger.info("Asset %s expended", asset_id)
        return result

    async def update_asset(
        self, actor: Actor, asset_id: str, fields: dict[str, Any],
    ) -> Result[AssetModel]:
        """Correct descriptive fields. Status, base and serial are off limits."""
        forbidden = sorted(set(fields) - UPDATABLE_FIELDS)
        if forbidden:
            return Err(ValidationError(
                f"Fields cannot be updated directly: {', '.join(forbidden)}"
            ))
        try:
            changes = AssetUpdate.model_validate(fields).model_dump(
                mode="json", exclude_none=True,
            )
        except SchemaError as exc:
            return Err(_schema_error(exc))
        if not changes:
            return Err(ValidationError("No fields to update"))

        async def _step(session: AsyncSession) -> Result[AssetModel]:
            asset = await self.get_for_update(session, asset_id)
            if asset is None:
                return Err(NotFoundError(f"Asset {asset_id} not found"))
            for field, value in changes.items():
                setattr(asset, field, value)
            await session.flush()
            await self.audit.append(
                session, AuditAction.UPDATE, EntityType.ASSET, asset_id, actor.id, changes,
            )
            return Ok(asset)

        return await self.db.run_in_transaction(_step, label="assets.update")

    # ── Read ──

    async def get_asset(self, session: AsyncSession, asset_id: str) -> AssetModel | None:
        return await session.get(AssetModel, asset_id)

    async def list_assets(
        self, session: AsyncSession, filters: AssetFilter | None = None,
    ) -> list[AssetModel]:
        filters = filters or AssetFilter()
        query = select(AssetModel)
        if filters.base_id:
            query = query.where(AssetModel.base_id == filters.base_id)
        if filters.type is not None:
            query = query.where(AssetModel.type == filters.type.value)
        if filters.status is not None:
            query = query.where(AssetModel.status == filters.status.value)
        if filters.purchase_id:
            query = query.where(AssetModel.purchase_id == filters.purchase_id)
        if filters.start_date is not None:
            query = query.where(AssetModel.created_at >= filters.start_date)
        if filters.end_date is not None:
            query = query.where(AssetModel.created_at <= filters.end_date)
        result = await session.execute(
            query.order_by(AssetModel.created_at.desc(), AssetModel.id)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        return list(result.scalars().all())
