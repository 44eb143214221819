"""
Stock ledger.

Every quantity-on-hand change goes through `adjust`, which locks the single
StockRecord for the exact (item, location, batch, expiry) key before reading
it. Callers append the matching Movement in the same unit of work, so for any
key the signed sum of movements equals the stored quantity.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core import errors
from db.database import unit_of_work, utcnow
from db.models import Item, Location, Movement, StockRecord
from services.audit import log_audit

logger = structlog.get_logger(__name__)


def _key_clause(item_id: UUID, location_id: UUID, batch_number: Optional[str], expiration_date: Optional[date]):
    return and_(
        StockRecord.item_id == item_id,
        StockRecord.location_id == location_id,
        StockRecord.batch_number.is_not_distinct_from(batch_number),
        StockRecord.expiration_date.is_not_distinct_from(expiration_date),
    )


def lock_stock_stmt(
    item_id: UUID,
    location_id: UUID,
    batch_number: Optional[str] = None,
    expiration_date: Optional[date] = None,
):
    return (
        select(StockRecord)
        .where(_key_clause(item_id, location_id, batch_number, expiration_date))
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def lock_stock(
    db: AsyncSession,
    item_id: UUID,
    location_id: UUID,
    batch_number: Optional[str] = None,
    expiration_date: Optional[date] = None,
) -> Optional[StockRecord]:
    res = await db.execute(lock_stock_stmt(item_id, location_id, batch_number, expiration_date))
    return res.scalar_one_or_none()


async def stock_quantity(
    db: AsyncSession,
    item_id: UUID,
    location_id: UUID,
    batch_number: Optional[str] = None,
    expiration_date: Optional[date] = None,
) -> int:
    """Unlocked read of one balance; a missing row reads as zero."""
    res = await db.execute(
        select(StockRecord.quantity).where(_key_clause(item_id, location_id, batch_number, expiration_date))
    )
    return int(res.scalar_one_or_none() or 0)


async def adjust(
    db: AsyncSession,
    *,
    item_id: UUID,
    location_id: UUID,
    delta: int,
    batch_number: Optional[str] = None,
    expiration_date: Optional[date] = None,
) -> Optional[StockRecord]:
    delta = int(delta)
    if delta == 0:
        res = await db.execute(
            select(StockRecord).where(_key_clause(item_id, location_id, batch_number, expiration_date))
        )
        return res.scalar_one_or_none()

    record = await lock_stock(db, item_id, location_id, batch_number, expiration_date)
    if record is None:
        if delta < 0:
            raise errors.OutOfStock(
                "Cannot decrease stock for a non-existing record",
                item_id=item_id,
                location_id=location_id,
                batch_number=batch_number,
                expiration_date=expiration_date,
                delta=delta,
                available=0,
            )
        record = StockRecord(
            item_id=item_id,
            location_id=location_id,
            batch_number=batch_number,
            expiration_date=expiration_date,
            quantity=delta,
            updated_at=utcnow(),
        )
        db.add(record)
        await db.flush()
        return record

    current = int(record.quantity or 0)
    next_quantity = current + delta
    if next_quantity < 0:
        raise errors.OutOfStock(
            "Resulting stock cannot be negative",
            item_id=item_id,
            location_id=location_id,
            batch_number=batch_number,
            expiration_date=expiration_date,
            delta=delta,
            available=current,
        )
    record.quantity = next_quantity
    record.batch_number = batch_number
    record.expiration_date = expiration_date
    record.updated_at = utcnow()
    await db.flush()
    return record


def record_movement(
    db: AsyncSession,
    *,
    item_id: UUID,
    quantity: int,
    movement_type: str,
    from_location_id: Optional[UUID] = None,
    to_location_id: Optional[UUID] = None,
    batch_number: Optional[str] = None,
    expiration_date: Optional[date] = None,
    source_type: Optional[str] = None,
    source_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
) -> Movement:
    mv = Movement(
        item_id=item_id,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        batch_number=batch_number,
        expiration_date=expiration_date,
        quantity=int(quantity),
        movement_type=movement_type,
        source_type=source_type,
        source_id=source_id,
        created_by_user_id=actor_id,
        created_at=utcnow(),
    )
    db.add(mv)
    return mv


async def move_stock(
    db: AsyncSession,
    *,
    item_id: UUID,
    quantity: int,
    from_location_id: Optional[UUID] = None,
    to_location_id: Optional[UUID] = None,
    batch_number: Optional[str] = None,
    expiration_date: Optional[date] = None,
    actor_id: Optional[UUID] = None,
) -> Movement:
    """
    Manual stock movement.

    - Both locations: MOVE (decrease source, increase destination).
    - Only `to_location_id`: ADJUSTMENT in. Only `from_location_id`: ADJUSTMENT out.
    """
    if not item_id:
        raise errors.ValidationError("item_id is required", field="item_id")
    if not from_location_id and not to_location_id:
        raise errors.ValidationError(
            "from_location_id or to_location_id is required", field="to_location_id"
        )
    if quantity is None or int(quantity) <= 0:
        raise errors.ValidationError("quantity must be > 0", field="quantity", value=quantity)
    if from_location_id and from_location_id == to_location_id:
        raise errors.ValidationError("from_location_id and to_location_id must differ", field="to_location_id")

    qty = int(quantity)
    movement_type = "MOVE" if (from_location_id and to_location_id) else "ADJUSTMENT"

    async with unit_of_work(db):
        if await db.get(Item, item_id) is None:
            raise errors.NotFound("Item not found", item_id=item_id)
        for loc_id in (from_location_id, to_location_id):
            if loc_id and await db.get(Location, loc_id) is None:
                raise errors.NotFound("Location not found", location_id=loc_id)

        if from_location_id:
            await adjust(
                db,
                item_id=item_id,
                location_id=from_location_id,
                delta=-qty,
                batch_number=batch_number,
                expiration_date=expiration_date,
            )
        if to_location_id:
            await adjust(
                db,
                item_id=item_id,
                location_id=to_location_id,
                delta=qty,
                batch_number=batch_number,
                expiration_date=expiration_date,
            )
        mv = record_movement(
            db,
            item_id=item_id,
            quantity=qty,
            movement_type=movement_type,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            batch_number=batch_number,
            expiration_date=expiration_date,
            source_type="manual",
            actor_id=actor_id,
        )
        await db.flush()
        log_audit(
            db,
            user_id=actor_id,
            action=movement_type,
            entity="movements",
            entity_id=mv.id,
            details={
                "item_id": item_id,
                "from_location_id": from_location_id,
                "to_location_id": to_location_id,
                "quantity": qty,
            },
        )

    logger.info(
        "Stock moved",
        movement_type=movement_type,
        item_id=str(item_id),
        from_location_id=str(from_location_id) if from_location_id else None,
        to_location_id=str(to_location_id) if to_location_id else None,
        quantity=qty,
    )
    return mv


async def movement_balance(
    db: AsyncSession,
    item_id: UUID,
    location_id: UUID,
    batch_number: Optional[str] = None,
    expiration_date: Optional[date] = None,
) -> int:
    """Signed sum of all movements touching one ledger key (must equal the StockRecord quantity)."""
    signed = case(
        (Movement.to_location_id == location_id, Movement.quantity),
        else_=-Movement.quantity,
    )
    res = await db.execute(
        select(func.coalesce(func.sum(signed), 0)).where(
            Movement.item_id == item_id,
            (Movement.to_location_id == location_id) | (Movement.from_location_id == location_id),
            Movement.batch_number.is_not_distinct_from(batch_number),
            Movement.expiration_date.is_not_distinct_from(expiration_date),
        )
    )
    return int(res.scalar_one() or 0)


async def query_stock(
    db: AsyncSession,
    item_id: Optional[UUID] = None,
    warehouse_id: Optional[UUID] = None,
    location_id: Optional[UUID] = None,
) -> List[dict]:
    stmt = (
        select(StockRecord, Item.sku, Item.name, Location.code, Location.warehouse_id)
        .join(Item, StockRecord.item_id == Item.id)
        .join(Location, StockRecord.location_id == Location.id)
    )
    if item_id:
        stmt = stmt.where(StockRecord.item_id == item_id)
    if warehouse_id:
        stmt = stmt.where(Location.warehouse_id == warehouse_id)
    if location_id:
        stmt = stmt.where(StockRecord.location_id == location_id)
    stmt = stmt.order_by(Item.sku, Location.code)

    res = await db.execute(stmt)
    out = []
    for (s, sku, name, location_code, wh_id) in res.all():
        out.append(
            {
                "id": s.id,
                "item_id": s.item_id,
                "sku": sku,
                "name": name,
                "location_id": s.location_id,
                "location_code": location_code,
                "warehouse_id": wh_id,
                "quantity": int(s.quantity),
                "batch_number": s.batch_number,
                "expiration_date": s.expiration_date,
                "updated_at": s.updated_at,
            }
        )
    return out


async def list_movements(
    db: AsyncSession,
    limit: int = 200,
    offset: int = 0,
    item_id: Optional[UUID] = None,
    location_id: Optional[UUID] = None,
) -> List[dict]:
    FromLocation = aliased(Location)
    ToLocation = aliased(Location)

    stmt = (
        select(Movement, Item.sku, Item.name, FromLocation.code, ToLocation.code)
        .join(Item, Movement.item_id == Item.id)
        .outerjoin(FromLocation, Movement.from_location_id == FromLocation.id)
        .outerjoin(ToLocation, Movement.to_location_id == ToLocation.id)
    )
    if item_id:
        stmt = stmt.where(Movement.item_id == item_id)
    if location_id:
        stmt = stmt.where((Movement.from_location_id == location_id) | (Movement.to_location_id == location_id))
    stmt = stmt.order_by(Movement.created_at.desc(), Movement.id).offset(offset).limit(limit)

    res = await db.execute(stmt)
    out = []
    for (mv, sku, name, from_code, to_code) in res.all():
        row = mv.to_schema
        row.update(
            {
                "sku": sku,
                "name": name,
                "from_location_code": from_code,
                "to_location_code": to_code,
            }
        )
        out.append(row)
    return out
