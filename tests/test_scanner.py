import uuid

import pytest
from sqlalchemy import select

from core import errors
from db.models import CycleCountRun
from services import catalog, ledger, scanner


class TestReplenishmentScan:
    async def test_creates_one_task_per_low_location(self, session, wh):
        await ledger.move_stock(session, item_id=wh.box, quantity=3, to_location_id=wh.pick)
        await ledger.move_stock(session, item_id=wh.box, quantity=40, to_location_id=wh.a1)
        await catalog.upsert_policy(session, wh.pick, min_qty=10, max_qty=50)
        await catalog.upsert_policy(session, wh.a1, min_qty=10)
        await catalog.upsert_policy(session, wh.a2, min_qty=5)

        tasks = await scanner.scan_replenishment(session)
        by_location = {t.location_id: t for t in tasks}
        assert set(by_location) == {wh.pick, wh.a2}

        pick_task = by_location[wh.pick]
        assert pick_task.task_type == "REPLENISHMENT"
        assert pick_task.auto_generated is True
        assert pick_task.task_metadata["current_qty"] == 3
        assert pick_task.task_metadata["suggested_qty"] == 47
        assert pick_task.priority == scanner.REPLENISHMENT_PRIORITY

        empty_task = by_location[wh.a2]
        assert empty_task.task_metadata["max_qty"] is None
        assert empty_task.task_metadata["suggested_qty"] == 5
        assert empty_task.priority == scanner.EMPTY_LOCATION_PRIORITY

    async def test_rescan_does_not_duplicate_open_tasks(self, session, wh):
        await catalog.upsert_policy(session, wh.pick, min_qty=10, max_qty=50)
        first = await scanner.scan_replenishment(session)
        second = await scanner.scan_replenishment(session)
        assert len(first) == 1
        assert second == []
        assert len(await scanner.list_tasks(session, task_type="REPLENISHMENT")) == 1

    async def test_completed_task_allows_a_new_one(self, session, wh):
        await catalog.upsert_policy(session, wh.pick, min_qty=10)
        [task] = await scanner.scan_replenishment(session)
        task.status = "DONE"
        await session.commit()

        again = await scanner.scan_replenishment(session)
        assert len(again) == 1

    def test_suggested_quantity(self):
        assert scanner.suggested_quantity(3, 10, 50) == 47
        assert scanner.suggested_quantity(3, 10, None) == 7
        assert scanner.suggested_quantity(60, 10, 50) == 0


class TestCycleCountScan:
    async def test_rotation_takes_fullest_locations(self, session, wh):
        await ledger.move_stock(session, item_id=wh.box, quantity=5, to_location_id=wh.a1)
        await ledger.move_stock(session, item_id=wh.box, quantity=30, to_location_id=wh.a2)
        await ledger.move_stock(session, item_id=wh.tape, quantity=12, to_location_id=wh.pick)

        tasks = await scanner.scan_cycle_count(session, strategy="ROTATION", limit=2, warehouse_id=wh.id)
        assert [t.location_id for t in tasks] == [wh.a2, wh.pick]
        assert all(t.task_type == "CYCLE_COUNT" for t in tasks)

        run = await session.scalar(select(CycleCountRun))
        assert run.strategy == "ROTATION"
        assert run.location_ids == [str(wh.a2), str(wh.pick)]

    async def test_code_order_and_open_task_dedupe(self, session, wh):
        first = await scanner.scan_cycle_count(session, strategy="CODE", limit=2, warehouse_id=wh.id)
        assert [t.task_metadata["location_code"] for t in first] == ["A-01", "A-02"]

        second = await scanner.scan_cycle_count(session, strategy="CODE", limit=2, warehouse_id=wh.id)
        assert [t.task_metadata["location_code"] for t in second] == ["P-01", "RCV-01"]

        repeat = await scanner.scan_cycle_count(
            session, strategy="CODE", limit=1, warehouse_id=wh.id, skip_open=False
        )
        assert [t.task_metadata["location_code"] for t in repeat] == ["A-01"]

    async def test_anomaly_samples_within_limit(self, session, wh):
        tasks = await scanner.scan_cycle_count(session, strategy="ANOMALY", limit=3, warehouse_id=wh.id)
        assert len(tasks) == 3
        assert len({t.location_id for t in tasks}) == 3

    @pytest.mark.parametrize("limit", [0, -2])
    async def test_limit_must_be_positive(self, session, wh, limit):
        with pytest.raises(errors.ValidationError):
            await scanner.scan_cycle_count(session, strategy="ROTATION", limit=limit)

    async def test_unknown_warehouse(self, session, wh):
        with pytest.raises(errors.NotFound) as exc:
            await scanner.scan_cycle_count(session, strategy="CODE", limit=1, warehouse_id=uuid.uuid4())
        assert "warehouse_id" in exc.value.context
        assert await session.scalar(select(CycleCountRun)) is None
