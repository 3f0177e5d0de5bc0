"""Tests for the purchase workflow and batch asset creation."""

from unittest.mock import AsyncMock, patch

import pytest

from armory_engine.assets.schemas import AssetFilter
from armory_engine.audit.schemas import AuditFilter
from armory_engine.common.exceptions import StorageUnavailableError
from armory_engine.common.results import Err
from armory_engine.engine import ArmoryEngine
from armory_engine.purchases.schemas import PurchaseFilter

from conftest import ADMIN, make_settings


def _specs(*serials, type="AMMUNITION"):
    return [
        {"serial_number": s, "type": type, "name": f"Crate {s}"}
        for s in serials
    ]


async def _counts(engine):
    async with engine.db.get_session() as session:
        assets = await engine.assets.list_assets(session)
        purchases = await engine.purchases.list_purchases(session)
    return len(assets), len(purchases)


class TestCreatePurchase:
    async def test_total_and_assets(self, engine, admin, base_a, when):
        result = await engine.create_purchase(
            admin, when, 5, 10.0, base_a.id, _specs("AM-1", "AM-2", "AM-3"),
        )
        assert result.ok
        purchase = result.value
        assert purchase.total_amount == 50.0
        assert purchase.quantity == 5
        assert purchase.status == "PENDING"
        assert len(purchase.assets) == 3
        for asset in purchase.assets:
            assert asset.status == "AVAILABLE"
            assert asset.base_id == base_a.id
            assert asset.purchase_id == purchase.id

    async def test_single_audit_entry(self, engine, admin, base_a, when):
        purchase = (await engine.create_purchase(
            admin, when, 2, 7.5, base_a.id, _specs("AM-1", "AM-2"),
        )).unwrap()
        entries = await engine.list_audit_log(AuditFilter(entity_id=purchase.id))
        assert len(entries) == 1
        assert entries[0].action == "PURCHASE"
        assert entries[0].details["total_amount"] == 15.0
        assert entries[0].details["asset_count"] == 2

        everything = await engine.list_audit_log(AuditFilter(action="PURCHASE"))
        assert len(everything) == 1

    async def test_no_specs_allowed(self, engine, admin, base_a, when):
        result = await engine.create_purchase(admin, when, 100, 0.5, base_a.id, [])
        assert result.ok
        assert result.value.assets == []
        assert result.value.total_amount == 50.0

    async def test_zero_price(self, engine, admin, base_a, when):
        result = await engine.create_purchase(admin, when, 1, 0, base_a.id, _specs("D-1"))
        assert result.value.total_amount == 0

    async def test_duplicate_serial_in_batch_rolls_back(self, engine, admin, base_a, when):
        result = await engine.create_purchase(
            admin, when, 3, 10.0, base_a.id, _specs("AM-1", "AM-1", "AM-2"),
        )
        assert result.code == "CONFLICT"
        assert await _counts(engine) == (0, 0)
        assert await engine.list_audit_log(AuditFilter(action="PURCHASE")) == []

    async def test_serial_clash_with_existing_asset(self, engine, admin, base_a, rifle, when):
        result = await engine.create_purchase(
            admin, when, 2, 10.0, base_a.id, _specs("AM-9", rifle.serial_number),
        )
        assert result.code == "CONFLICT"
        assert await _counts(engine) == (1, 0)

    async def test_storage_failure_on_second_asset(self, engine, admin, base_a, when):
        real_insert = engine.assets.insert
        calls = []

        async def flaky(session, spec, base_id, purchase_id=None):
            calls.append(spec)
            if len(calls) == 2:
                return Err(StorageUnavailableError("write failed"))
            return await real_insert(session, spec, base_id, purchase_id)

        with patch.object(engine.assets, "insert", AsyncMock(side_effect=flaky)):
            result = await engine.create_purchase(
                admin, when, 3, 10.0, base_a.id, _specs("AM-1", "AM-2", "AM-3"),
            )

        assert result.code == "STORAGE_UNAVAILABLE"
        assert len(calls) == 2
        assert await _counts(engine) == (0, 0)

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    async def test_bad_quantity(self, engine, admin, base_a, when, quantity):
        result = await engine.create_purchase(admin, when, quantity, 1.0, base_a.id, [])
        assert result.code == "VALIDATION_ERROR"

    async def test_negative_price(self, engine, admin, base_a, when):
        result = await engine.create_purchase(admin, when, 1, -0.01, base_a.id, [])
        assert result.code == "VALIDATION_ERROR"

    async def test_invalid_spec_names_index(self, engine, admin, base_a, when):
        specs = _specs("AM-1") + [{"serial_number": "AM-2", "type": "LASER", "name": "x"}]
        result = await engine.create_purchase(admin, when, 2, 1.0, base_a.id, specs)
        assert result.code == "VALIDATION_ERROR"
        assert "assets[1]" in result.error.message
        assert await _counts(engine) == (0, 0)

    async def test_unknown_base(self, engine, admin, when):
        result = await engine.create_purchase(admin, when, 1, 1.0, "missing", [])
        assert result.code == "NOT_FOUND"


class TestStrictQuantity:
    @pytest.fixture
    async def strict_engine(self):
        eng = ArmoryEngine(make_settings(strict_purchase_quantity=True))
        await eng.start()
        yield eng
        await eng.close()

    async def test_mismatch_rejected(self, strict_engine, when):
        base = (await strict_engine.bases.create_base(ADMIN, "Fort Alpha", "North")).unwrap()
        result = await strict_engine.create_purchase(
            ADMIN, when, 5, 10.0, base.id, _specs("AM-1", "AM-2", "AM-3"),
        )
        assert result.code == "VALIDATION_ERROR"

    async def test_match_accepted(self, strict_engine, when):
        base = (await strict_engine.bases.create_base(ADMIN, "Fort Alpha", "North")).unwrap()
        result = await strict_engine.create_purchase(
            ADMIN, when, 2, 10.0, base.id, _specs("AM-1", "AM-2"),
        )
        assert result.ok


class TestDecide:
    @pytest.fixture
    async def purchase(self, engine, admin, base_a, when):
        return (await engine.create_purchase(
            admin, when, 2, 25.0, base_a.id, _specs("AM-1", "AM-2"),
        )).unwrap()

    async def test_approve(self, engine, admin, purchase):
        result = await engine.approve_purchase(admin, purchase.id)
        assert result.value.status == "APPROVED"
        assert len(result.value.assets) == 2
        assert all(a.status == "AVAILABLE" for a in result.value.assets)

        entries = await engine.list_audit_log(AuditFilter(entity_id=purchase.id))
        assert [e.action for e in entries] == ["PURCHASE_APPROVE", "PURCHASE"]

    async def test_reject_leaves_assets(self, engine, admin, purchase):
        result = await engine.reject_purchase(admin, purchase.id)
        assert result.value.status == "REJECTED"
        async with engine.db.get_session() as session:
            assets = await engine.assets.list_assets(
                session, AssetFilter(purchase_id=purchase.id),
            )
        assert len(assets) == 2
        assert all(a.status == "AVAILABLE" for a in assets)

    async def test_decide_twice(self, engine, admin, purchase):
        await engine.approve_purchase(admin, purchase.id)
        assert (await engine.reject_purchase(admin, purchase.id)).code == "INVALID_STATE"
        assert (await engine.approve_purchase(admin, purchase.id)).code == "INVALID_STATE"

    async def test_stale_pending_read_loses_race(self, engine, admin, purchase):
        assert (await engine.approve_purchase(admin, purchase.id)).ok
        assert purchase.status == "PENDING"

        with patch.object(engine.purchases, "_get_for_update", AsyncMock(return_value=purchase)):
            result = await engine.reject_purchase(admin, purchase.id)

        assert result.code == "INVALID_STATE"
        assert "no longer pending" in str(result.error)
        async with engine.db.get_session() as session:
            stored = await engine.purchases.get_purchase(session, purchase.id)
        assert stored.status == "APPROVED"
        entries = await engine.list_audit_log(AuditFilter(entity_id=purchase.id))
        assert [e.action for e in entries] == ["PURCHASE_APPROVE", "PURCHASE"]

    async def test_unknown(self, engine, admin):
        assert (await engine.approve_purchase(admin, "missing")).code == "NOT_FOUND"


class TestSummary:
    async def test_summary_by_base_and_status(self, engine, admin, base_a, base_b, when):
        first = (await engine.create_purchase(admin, when, 5, 10.0, base_a.id, [])).unwrap()
        await engine.create_purchase(admin, when, 2, 3.0, base_a.id, [])
        await engine.create_purchase(admin, when, 1, 100.0, base_b.id, [])
        await engine.approve_purchase(admin, first.id)

        async with engine.db.get_session() as session:
            at_a = await engine.purchases.summary(session, PurchaseFilter(base_id=base_a.id))
            approved = await engine.purchases.summary(
                session, PurchaseFilter(status="APPROVED"),
            )
            everything = await engine.purchases.summary(session)

        assert at_a == {"total_purchases": 2, "total_quantity": 7, "total_amount": 56.0}
        assert approved["total_amount"] == 50.0
        assert everything["total_purchases"] == 3
