"""
Replenishment and cycle-count scanner.

Reads ledger and policy state and writes Task rows; it never changes stock.
Scans are on demand; nothing here schedules itself.
"""

from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core import errors
from db.database import unit_of_work
from db.models import CycleCountRun, Location, ReplenishmentPolicy, StockRecord, Task, Warehouse
from db.tasks import OPEN_TASK_STATUSES
from services.audit import log_audit
from services.validation import ensure_exists

logger = structlog.get_logger(__name__)

REPLENISHMENT_PRIORITY = 4
EMPTY_LOCATION_PRIORITY = 5
CYCLE_COUNT_PRIORITY = 2


def _quantity_by_location():
    return (
        select(StockRecord.location_id, func.coalesce(func.sum(StockRecord.quantity), 0).label("qty"))
        .group_by(StockRecord.location_id)
        .subquery()
    )


async def _open_task_locations(db: AsyncSession, task_type: str) -> set:
    res = await db.execute(
        select(Task.location_id).where(
            Task.task_type == task_type,
            Task.status.in_(OPEN_TASK_STATUSES),
            Task.location_id.is_not(None),
        )
    )
    return set(res.scalars().all())


def suggested_quantity(current_qty: int, min_qty: int, max_qty: Optional[int]) -> int:
    """Top up to max when a max is set, otherwise back to min."""
    target = max_qty if max_qty is not None else min_qty
    return max(int(target) - int(current_qty), 0)


async def scan_replenishment(db: AsyncSession, actor_id: Optional[UUID] = None) -> List[Task]:
    async with unit_of_work(db):
        # Two concurrent scans serialize here, so the open-task check below
        # cannot miss a task the other scan is about to insert.
        await db.execute(select(ReplenishmentPolicy.id).with_for_update())

        qty = _quantity_by_location()
        res = await db.execute(
            select(ReplenishmentPolicy, Location, func.coalesce(qty.c.qty, 0))
            .join(Location, ReplenishmentPolicy.location_id == Location.id)
            .outerjoin(qty, qty.c.location_id == ReplenishmentPolicy.location_id)
            .order_by(Location.code)
        )
        rows = res.all()
        open_locations = await _open_task_locations(db, "REPLENISHMENT")

        created = []
        for policy, location, current in rows:
            current = int(current or 0)
            if current >= int(policy.min_qty):
                continue
            if location.id in open_locations:
                continue
            task = Task(
                task_type="REPLENISHMENT",
                status="PENDING",
                priority=EMPTY_LOCATION_PRIORITY if current == 0 else REPLENISHMENT_PRIORITY,
                location_id=location.id,
                auto_generated=True,
                task_metadata={
                    "location_id": str(location.id),
                    "location_code": location.code,
                    "warehouse_id": str(location.warehouse_id),
                    "current_qty": current,
                    "min_qty": int(policy.min_qty),
                    "max_qty": int(policy.max_qty) if policy.max_qty is not None else None,
                    "suggested_qty": suggested_quantity(current, policy.min_qty, policy.max_qty),
                },
            )
            db.add(task)
            created.append(task)
            open_locations.add(location.id)

        await db.flush()
        log_audit(
            db,
            user_id=actor_id,
            action="SCAN",
            entity="tasks",
            details={"task_type": "REPLENISHMENT", "policies": len(rows), "created": [t.id for t in created]},
        )

    logger.info("Replenishment scan finished", policies=len(rows), created=len(created))
    return created


async def scan_cycle_count(
    db: AsyncSession,
    strategy: str = "ROTATION",
    limit: int = 10,
    warehouse_id: Optional[UUID] = None,
    skip_open: bool = True,
    actor_id: Optional[UUID] = None,
) -> List[Task]:
    """
    Pick `limit` locations to count and create one CYCLE_COUNT task for each.

    ROTATION takes the fullest locations first, ANOMALY a random sample, any
    other strategy walks location codes. With `skip_open`, locations that
    already have an open cycle-count task are left out before the limit is
    applied.
    """
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise errors.ValidationError("limit must be an integer", field="limit", value=limit)
    if limit < 1:
        raise errors.ValidationError("limit must be >= 1", field="limit", value=limit)
    strategy = (strategy or "ROTATION").strip().upper()

    async with unit_of_work(db):
        if warehouse_id:
            await ensure_exists(db, Warehouse, warehouse_id, "warehouse_id")
        qty = _quantity_by_location()
        stmt = (
            select(Location, func.coalesce(qty.c.qty, 0))
            .outerjoin(qty, qty.c.location_id == Location.id)
        )
        if warehouse_id:
            stmt = stmt.where(Location.warehouse_id == warehouse_id)
        if skip_open:
            open_locations = await _open_task_locations(db, "CYCLE_COUNT")
            if open_locations:
                stmt = stmt.where(Location.id.not_in(list(open_locations)))

        if strategy == "ROTATION":
            stmt = stmt.order_by(func.coalesce(qty.c.qty, 0).desc(), Location.code)
        elif strategy == "ANOMALY":
            stmt = stmt.order_by(func.random())
        else:
            stmt = stmt.order_by(Location.code)

        res = await db.execute(stmt.limit(limit))
        selected = res.all()

        run = CycleCountRun(
            warehouse_id=warehouse_id,
            strategy=strategy,
            limit=limit,
            location_ids=[str(location.id) for location, _ in selected],
            created_by_user_id=actor_id,
        )
        db.add(run)
        await db.flush()

        created = []
        for location, current in selected:
            task = Task(
                task_type="CYCLE_COUNT",
                status="PENDING",
                priority=CYCLE_COUNT_PRIORITY,
                location_id=location.id,
                auto_generated=True,
                task_metadata={
                    "run_id": str(run.id),
                    "strategy": strategy,
                    "location_id": str(location.id),
                    "location_code": location.code,
                    "warehouse_id": str(location.warehouse_id),
                    "system_qty": int(current or 0),
                },
            )
            db.add(task)
            created.append(task)

        await db.flush()
        log_audit(
            db,
            user_id=actor_id,
            action="SCAN",
            entity="cycle_count_runs",
            entity_id=run.id,
            details={"strategy": strategy, "limit": limit, "location_ids": run.location_ids},
        )

    logger.info("Cycle count scan finished", strategy=strategy, limit=limit, created=len(created))
    return created


async def list_tasks(
    db: AsyncSession,
    task_type: Optional[str] = None,
    status: Optional[str] = None,
    location_id: Optional[UUID] = None,
) -> List[Task]:
    stmt = select(Task).order_by(Task.priority.desc(), Task.created_at.desc())
    if task_type:
        stmt = stmt.where(Task.task_type == task_type)
    if status:
        stmt = stmt.where(Task.status == status)
    if location_id:
        stmt = stmt.where(Task.location_id == location_id)
    res = await db.execute(stmt)
    return list(res.scalars().all())
