"""Tests for the hash-chained audit log."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from armory_engine.audit.models import AuditLogEntryModel
from armory_engine.audit.schemas import AuditFilter
from armory_engine.audit.service import AuditService

from conftest import make_settings


class TestAppend:
    async def test_first_entry(self, engine):
        async with engine.db.get_session() as session:
            entry = await engine.audit.append(
                session, "CREATE", "ASSET", "asset-1", "admin-1", {"name": "Rifle"},
            )
            assert entry.sequence == 1
            assert entry.prev_hash is None
            assert len(entry.entry_hash) == 64
            assert entry.signature

    async def test_chain_links(self, engine):
        async with engine.db.get_session() as session:
            first = await engine.audit.append(session, "CREATE", "ASSET", "a1", "u1", {})
            second = await engine.audit.append(session, "ASSIGN", "ASSET", "a1", "u1", {})
            assert second.sequence == 2
            assert second.prev_hash == first.entry_hash

    async def test_chains_are_per_entity(self, engine):
        async with engine.db.get_session() as session:
            await engine.audit.append(session, "CREATE", "ASSET", "a1", "u1", {})
            other = await engine.audit.append(session, "CREATE", "ASSET", "a2", "u1", {})
            assert other.sequence == 1
            assert other.prev_hash is None

    async def test_details_made_json_safe(self, engine):
        moment = datetime(2026, 1, 2, 3, 4, tzinfo=timezone.utc)
        async with engine.db.get_session() as session:
            entry = await engine.audit.append(
                session, "TRANSFER", "ASSET", "a1", "u1", {"transfer_date": moment},
            )
            assert entry.details == {"transfer_date": "2026-01-02T03:04:00Z"}

    async def test_unknown_action_rejected(self, engine):
        async with engine.db.get_session() as session:
            with pytest.raises(ValueError):
                await engine.audit.append(session, "DELETE", "ASSET", "a1", "u1", {})


class TestEntryHash:
    def test_deterministic(self):
        args = ("CREATE", "ASSET", "a1", "u1", {"b": 2, "a": 1}, 1, None)
        assert AuditService._compute_entry_hash(*args) == AuditService._compute_entry_hash(*args)

    def test_key_order_irrelevant(self):
        one = AuditService._compute_entry_hash("CREATE", "ASSET", "a1", "u1", {"a": 1, "b": 2}, 1, None)
        two = AuditService._compute_entry_hash("CREATE", "ASSET", "a1", "u1", {"b": 2, "a": 1}, 1, None)
        assert one == two

    def test_prev_hash_changes_hash(self):
        one = AuditService._compute_entry_hash("CREATE", "ASSET", "a1", "u1", {}, 2, "x" * 64)
        two = AuditService._compute_entry_hash("CREATE", "ASSET", "a1", "u1", {}, 2, "y" * 64)
        assert one != two


class TestVerifyChain:
    async def test_valid_chain(self, engine, admin, rifle, soldier):
        await engine.assign_asset(admin, rifle.id, soldier.id)
        await engine.expend_asset(admin, rifle.id)
        async with engine.db.get_session() as session:
            result = await engine.audit.verify_chain(session, "ASSET", rifle.id)
        assert result == {"valid": True, "entries_checked": 3, "break_at": None}

    async def test_empty_chain_is_valid(self, engine):
        async with engine.db.get_session() as session:
            result = await engine.audit.verify_chain(session, "ASSET", "nothing")
        assert result["valid"] is True
        assert result["entries_checked"] == 0

    async def test_tampered_details_detected(self, engine, admin, rifle, soldier):
        await engine.assign_asset(admin, rifle.id, soldier.id)
        entries = await engine.list_audit_log(AuditFilter(entity_id=rifle.id))
        assign_entry = entries[0]

        async with engine.db.get_session() as session:
            await session.execute(
                update(AuditLogEntryModel)
                .where(AuditLogEntryModel.id == assign_entry.id)
                .values(details={"assigned_to_id": "someone-else"})
            )

        async with engine.db.get_session() as session:
            result = await engine.audit.verify_chain(session, "ASSET", rifle.id)
        assert result["valid"] is False
        assert result["entries_checked"] == 1
        assert result["break_at"] == assign_entry.id

    async def test_wrong_signing_key_detected(self, engine, rifle):
        other = AuditService(make_settings(audit_hmac_key="another-key"))
        async with engine.db.get_session() as session:
            result = await other.verify_chain(session, "ASSET", rifle.id)
        assert result["valid"] is False
        assert result["entries_checked"] == 0


class TestAuditCoverage:
    async def test_one_entry_per_operation(self, engine, admin, rifle, soldier, base_a, base_b, when):
        before = len(await engine.list_audit_log(AuditFilter(limit=500)))
        transfer = (await engine.initiate_transfer(
            admin, rifle.id, base_a.id, base_b.id, when,
        )).unwrap()
        await engine.complete_transfer(admin, transfer.id)
        await engine.assign_asset(admin, rifle.id, soldier.id)
        after = await engine.list_audit_log(AuditFilter(limit=500))
        assert len(after) == before + 3

    async def test_failed_operation_writes_nothing(self, engine, admin, rifle, soldier):
        await engine.expend_asset(admin, rifle.id)
        before = len(await engine.list_audit_log(AuditFilter(limit=500)))
        assert not (await engine.assign_asset(admin, rifle.id, soldier.id)).ok
        assert not (await engine.expend_asset(admin, rifle.id)).ok
        assert len(await engine.list_audit_log(AuditFilter(limit=500))) == before


class TestListEntries:
    async def test_filter_by_user_and_action(self, engine, base_a):
        async with engine.db.get_session() as session:
            await engine.audit.append(session, "CREATE", "ASSET", "a1", "alice", {})
            await engine.audit.append(session, "ASSIGN", "ASSET", "a1", "bob", {})
            await engine.audit.append(session, "CREATE", "ASSET", "a2", "bob", {})

        by_bob = await engine.list_audit_log(AuditFilter(user_id="bob"))
        creates = await engine.list_audit_log(AuditFilter(action="CREATE", entity_type="ASSET"))
        assert {e.entity_id for e in by_bob} == {"a1", "a2"}
        assert {e.user_id for e in creates} == {"alice", "bob"}

    async def test_time_window(self, engine, base_a):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        assert await engine.list_audit_log(AuditFilter(since=future)) == []
        assert len(await engine.list_audit_log(AuditFilter(until=future))) == 1

    async def test_pagination(self, engine):
        async with engine.db.get_session() as session:
            for n in range(5):
                await engine.audit.append(session, "CREATE", "ASSET", f"a{n}", "u1", {})
        page = await engine.list_audit_log(AuditFilter(limit=2, offset=1))
        assert len(page) == 2


class TestAuditAtomicity:
    async def test_audit_failure_rolls_back_mutation(self, engine, admin, rifle, soldier):
        broken = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))
        with patch.object(engine.audit, "append", broken):
            result = await engine.assign_asset(admin, rifle.id, soldier.id)

        assert result.code == "STORAGE_UNAVAILABLE"
        async with engine.db.get_session() as session:
            asset = await engine.assets.get_asset(session, rifle.id)
        assert asset.status == "AVAILABLE"
        assert asset.assigned_to_id is None
