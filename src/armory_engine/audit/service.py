"""Audit log service: append, query and verify the per-entity entry chain."""

import hashlib
import hmac as hmac_mod
import json
from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from armory_engine.audit.models import AuditAction, AuditLogEntryModel, EntityType
from armory_engine.audit.schemas import AuditFilter
from armory_engine.common.config import ArmorySettings


class AuditService:
    """Append-only, hash-chained audit log.

    Entries are written only through :meth:`append`, always inside the
    caller's transaction; there is no update or delete path.
    """

    def __init__(self, settings: ArmorySettings):
        self.settings = settings

    # ── Write ──

    async def append(
        self,
        session: AsyncSession,
        action: AuditAction | str,
        entity_type: EntityType | str,
        entity_id: str,
        user_id: str,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntryModel:
        """Append one entry to the entity's chain. Never rejects on content."""
        action = AuditAction(action).value
        entity_type = EntityType(entity_type).value
        details = to_jsonable_python(details or {})

        head = await self.get_chain_head(session, entity_type, entity_id)
        sequence = head.sequence + 1 if head else 1
        prev_hash = head.entry_hash if head else None

        entry_hash = self._compute_entry_hash(
            action, entity_type, entity_id, user_id, details, sequence, prev_hash,
        )

        entry = AuditLogEntryModel(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            details=details,
            sequence=sequence,
            prev_hash=prev_hash,
            entry_hash=entry_hash,
            signature=self._sign(entry_hash),
        )
        session.add(entry)
        await session.flush()
        return entry

    # ── Read ──

    async def get_chain_head(
        self, session: AsyncSession, entity_type: str, entity_id: str,
    ) -> AuditLogEntryModel | None:
        """Return the most recent entry for an entity."""
        result = await session.execute(
            select(AuditLogEntryModel)
            .where(
                AuditLogEntryModel.entity_type == entity_type,
                AuditLogEntryModel.entity_id == entity_id,
            )
            .order_by(AuditLogEntryModel.sequence.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_entries(
        self, session: AsyncSession, filters: AuditFilter | None = None,
    ) -> list[AuditLogEntryModel]:
        """Filtered entry list, newest first."""
        filters = filters or AuditFilter()
        query = select(AuditLogEntryModel)
        if filters.action is not None:
            query = query.where(AuditLogEntryModel.action == filters.action.value)
        if filters.entity_type is not None:
            query = query.where(AuditLogEntryModel.entity_type == filters.entity_type.value)
        if filters.entity_id:
            query = query.where(AuditLogEntryModel.entity_id == filters.entity_id)
        if filters.user_id:
            query = query.where(AuditLogEntryModel.user_id == filters.user_id)
        if filters.since is not None:
            query = query.where(AuditLogEntryModel.created_at >= filters.since)
        if filters.until is not None:
            query = query.where(AuditLogEntryModel.created_at <= filters.until)
        query = (
            query.order_by(
                AuditLogEntryModel.created_at.desc(),
                AuditLogEntryModel.sequence.desc(),
            )
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    # ── Verify ──

    async def verify_chain(
        self, session: AsyncSession, entity_type: str, entity_id: str,
    ) -> dict[str, Any]:
        """Walk an entity's chain oldest→newest, verify hashes and signatures."""
        result = await session.execute(
            select(AuditLogEntryModel)
            .where(
                AuditLogEntryModel.entity_type == entity_type,
                AuditLogEntryModel.entity_id == entity_id,
            )
            .order_by(AuditLogEntryModel.sequence.asc())
        )
        entries = list(result.scalars().all())

        prev_hash = None
        for index, entry in enumerate(entries):
            expected_hash = self._compute_entry_hash(
                entry.action, entry.entity_type, entry.entity_id, entry.user_id,
                entry.details, entry.sequence, entry.prev_hash,
            )
            if (
                entry.sequence != index + 1
                or entry.prev_hash != prev_hash
                or entry.entry_hash != expected_hash
                or not self._verify_signature(entry.entry_hash, entry.signature)
            ):
                return {"valid": False, "entries_checked": index, "break_at": entry.id}
            prev_hash = entry.entry_hash

        return {"valid": True, "entries_checked": len(entries), "break_at": None}

    # ── Internal helpers ──

    @staticmethod
    def _compute_entry_hash(
        action: str,
        entity_type: str,
        entity_id: str,
        user_id: str,
        details: dict[str, Any],
        sequence: int,
        prev_hash: str | None,
    ) -> str:
        """SHA-256 of canonical JSON of the entry fields."""
        canonical = json.dumps(
            {
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "user_id": user_id,
                "details": details,
                "sequence": sequence,
                "prev_hash": prev_hash,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    def _sign(self, entry_hash: str) -> str:
        return hmac_mod.new(
            self.settings.audit_hmac_key.encode(),
            entry_hash.encode(),
            hashlib.sha256,
        ).hexdigest()

    def _verify_signature(self, entry_hash: str, signature: str) -> bool:
        return hmac_mod.compare_digest(self._sign(entry_hash), signature)
