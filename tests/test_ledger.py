from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from core import errors
from db.database import unit_of_work
from db.models import AuditLog, Movement, StockRecord
from services import ledger


async def _adjust(session, **kwargs):
    async with unit_of_work(session):
        return await ledger.adjust(session, **kwargs)


class TestAdjust:
    async def test_first_positive_adjust_creates_record(self, session, wh):
        record = await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=7)
        assert record.quantity == 7
        assert await ledger.stock_quantity(session, wh.box, wh.a1) == 7

    async def test_adjusts_accumulate(self, session, wh):
        await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=10)
        await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=-4)
        await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=2)
        assert await ledger.stock_quantity(session, wh.box, wh.a1) == 8

    async def test_negative_result_is_rejected(self, session, wh):
        await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=3)
        with pytest.raises(errors.OutOfStock) as exc:
            await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=-5)
        assert exc.value.context["available"] == 3
        assert exc.value.context["delta"] == -5
        assert await ledger.stock_quantity(session, wh.box, wh.a1) == 3

    async def test_decrease_of_missing_record_is_rejected(self, session, wh):
        with pytest.raises(errors.OutOfStock):
            await _adjust(session, item_id=wh.box, location_id=wh.a2, delta=-1)
        count = await session.scalar(select(func.count()).select_from(StockRecord))
        assert count == 0

    async def test_zero_delta_is_a_noop(self, session, wh):
        assert await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=0) is None
        await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=4)
        record = await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=0)
        assert record.quantity == 4

    async def test_batches_are_separate_balances(self, session, wh):
        exp = date(2030, 1, 31)
        await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=5)
        await _adjust(session, item_id=wh.box, location_id=wh.a1, delta=9, batch_number="B1", expiration_date=exp)
        assert await ledger.stock_quantity(session, wh.box, wh.a1) == 5
        assert await ledger.stock_quantity(session, wh.box, wh.a1, "B1", exp) == 9


class TestLocking:
    def test_lock_statement_selects_for_update(self, wh):
        stmt = ledger.lock_stock_stmt(wh.box, wh.a1, None, None)
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" in sql
        assert "IS NOT DISTINCT FROM" in sql


class TestMoveStock:
    async def test_adjustment_in_then_move(self, session, wh, user):
        await ledger.move_stock(session, item_id=wh.box, quantity=10, to_location_id=wh.a1, actor_id=user.id)
        mv = await ledger.move_stock(
            session, item_id=wh.box, quantity=4, from_location_id=wh.a1, to_location_id=wh.pick, actor_id=user.id
        )
        assert mv.movement_type == "MOVE"
        assert await ledger.stock_quantity(session, wh.box, wh.a1) == 6
        assert await ledger.stock_quantity(session, wh.box, wh.pick) == 4

        audits = (await session.execute(select(AuditLog).where(AuditLog.entity == "movements"))).scalars().all()
        assert {a.action for a in audits} == {"ADJUSTMENT", "MOVE"}

    async def test_movements_reconcile_with_stock(self, session, wh):
        await ledger.move_stock(session, item_id=wh.box, quantity=20, to_location_id=wh.a1)
        await ledger.move_stock(session, item_id=wh.box, quantity=8, from_location_id=wh.a1, to_location_id=wh.a2)
        await ledger.move_stock(session, item_id=wh.box, quantity=3, from_location_id=wh.a2)

        for loc in (wh.a1, wh.a2):
            assert await ledger.movement_balance(session, wh.box, loc) == await ledger.stock_quantity(
                session, wh.box, loc
            )

    async def test_failed_move_leaves_no_trace(self, session, wh):
        await ledger.move_stock(session, item_id=wh.box, quantity=2, to_location_id=wh.a1)
        with pytest.raises(errors.OutOfStock):
            await ledger.move_stock(session, item_id=wh.box, quantity=5, from_location_id=wh.a1, to_location_id=wh.a2)

        assert await ledger.stock_quantity(session, wh.box, wh.a1) == 2
        assert await ledger.stock_quantity(session, wh.box, wh.a2) == 0
        moves = await session.scalar(select(func.count()).select_from(Movement))
        assert moves == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"quantity": 0},
            {"quantity": -3},
            {"quantity": 1, "to_location_id": None},
        ],
    )
    async def test_invalid_requests(self, session, wh, kwargs):
        params = {"item_id": wh.box, "to_location_id": wh.a1}
        params.update(kwargs)
        with pytest.raises(errors.ValidationError):
            await ledger.move_stock(session, **params)

    async def test_same_source_and_destination(self, session, wh):
        with pytest.raises(errors.ValidationError):
            await ledger.move_stock(session, item_id=wh.box, quantity=1, from_location_id=wh.a1, to_location_id=wh.a1)


class TestQueries:
    async def test_query_stock_filters_by_warehouse(self, session, wh):
        await ledger.move_stock(session, item_id=wh.box, quantity=5, to_location_id=wh.a1)
        await ledger.move_stock(session, item_id=wh.tape, quantity=2, to_location_id=wh.foreign)

        rows = await ledger.query_stock(session, warehouse_id=wh.id)
        assert [(r["sku"], r["location_code"], r["quantity"]) for r in rows] == [("SKU-BOX", "A-01", 5)]

    async def test_list_movements_paginates(self, session, wh):
        for _ in range(3):
            await ledger.move_stock(session, item_id=wh.box, quantity=1, to_location_id=wh.a1)
        page = await ledger.list_movements(session, limit=2)
        assert len(page) == 2
        assert page[0]["to_location_code"] == "A-01"
        rest = await ledger.list_movements(session, limit=2, offset=2)
        assert len(rest) == 1
