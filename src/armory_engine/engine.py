"""Engine container: wires the storage handle into every service and workflow.

One instance per application. Nothing here is module-global; the FastAPI
app keeps its instance on ``app.state.engine``.
"""

from datetime import datetime
from typing import Any

from armory_engine.assets.models import AssetModel
from armory_engine.assets.registry import AssetRegistry
from armory_engine.assets.schemas import AssetCreate, AssetSpec
from armory_engine.audit.models import AuditLogEntryModel
from armory_engine.audit.schemas import AuditFilter
from armory_engine.audit.service import AuditService
from armory_engine.bases.service import BaseService
from armory_engine.common.config import ArmorySettings, get_settings
from armory_engine.common.database import DatabaseManager
from armory_engine.common.results import Result
from armory_engine.common.security import Actor
from armory_engine.personnel.service import PersonnelService
from armory_engine.purchases.models import PurchaseModel
from armory_engine.purchases.service import PurchaseWorkflow
from armory_engine.transfers.models import TransferModel
from armory_engine.transfers.service import TransferWorkflow


class ArmoryEngine:
    """The operation surface callers use."""

    def __init__(
        self,
        settings: ArmorySettings | None = None,
        db: DatabaseManager | None = None,
    ):
        self.settings = settings or get_settings()
        self.db = db or DatabaseManager(self.settings)
        self.audit = AuditService(self.settings)
        self.bases = BaseService(self.db, self.audit)
        self.personnel = PersonnelService(self.db, self.audit)
        self.assets = AssetRegistry(self.db, self.audit)
        self.transfers = TransferWorkflow(self.db, self.assets, self.audit)
        self.purchases = PurchaseWorkflow(self.db, self.assets, self.audit, self.settings)

    async def start(self) -> None:
        await self.db.init()
        await self.db.create_all()

    async def close(self) -> None:
        await self.db.close()

    # ── Assets ──

    async def create_asset(self, actor: Actor, spec: AssetCreate | dict) -> Result[AssetModel]:
        return await self.assets.create_asset(actor, spec)

    async def assign_asset(self, actor: Actor, asset_id: str, user_id: str) -> Result[AssetModel]:
        return await self.assets.assign_asset(actor, asset_id, user_id)

    async def expend_asset(self, actor: Actor, asset_id: str) -> Result[AssetModel]:
        return await self.assets.expend_asset(actor, asset_id)

    async def update_asset(
        self, actor: Actor, asset_id: str, fields: dict[str, Any],
    ) -> Result[AssetModel]:
        return await self.assets.update_asset(actor, asset_id, fields)

    # ── Transfers ──

    async def initiate_transfer(
        self,
        actor: Actor,
        asset_id: str,
        source_base_id: str,
        dest_base_id: str,
        transfer_date: datetime,
        notes: str | None = None,
    ) -> Result[TransferModel]:
        return await self.transfers.initiate(
            actor, asset_id, source_base_id, dest_base_id, transfer_date, notes,
        )

    async def complete_transfer(self, actor: Actor, transfer_id: str) -> Result[TransferModel]:
        return await self.transfers.complete(actor, transfer_id)

    async def approve_transfer(self, actor: Actor, transfer_id: str) -> Result[TransferModel]:
        return await self.transfers.approve(actor, transfer_id)

    async def reject_transfer(self, actor: Actor, transfer_id: str) -> Result[TransferModel]:
        return await self.transfers.reject(actor, transfer_id)

    # ── Purchases ──

    async def create_purchase(
        self,
        actor: Actor,
        date: datetime,
        quantity: int,
        unit_price: float,
        base_id: str,
        asset_specs: list[AssetSpec | dict],
    ) -> Result[PurchaseModel]:
        return await self.purchases.create(
            actor, date, quantity, unit_price, base_id, asset_specs,
        )

    async def approve_purchase(self, actor: Actor, purchase_id: str) -> Result[PurchaseModel]:
        return await self.purchases.approve(actor, purchase_id)

    async def reject_purchase(self, actor: Actor, purchase_id: str) -> Result[PurchaseModel]:
        return await self.purchases.reject(actor, purchase_id)

    # ── Audit ──

    async def list_audit_log(
        self, filters: AuditFilter | None = None,
    ) -> list[AuditLogEntryModel]:
        async with self.db.get_session() as session:
            return await self.audit.list_entries(session, filters)
