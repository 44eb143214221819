"""
Outbound fulfillment: sales/shipping orders and picking.

Picks draw from the balance with no batch and no expiry at the requested location
only. A pick that exceeds the locked balance fails the whole batch with
InsufficientStock and leaves stock and picked quantities untouched.
"""

from datetime import date
from typing import Any, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core import errors
from db.database import unit_of_work
from db.models import Item, Location, OutboundOrder, OutboundOrderLine, StockRecord, Warehouse
from services import ledger, rules
from services.audit import log_audit
from services.validation import ensure_exists, ensure_items, field, positive_int, require_fields, validate_order_request

logger = structlog.get_logger(__name__)

OUTBOUND_STATUSES = ("OPEN", "PICKING", "SHIPPED")


def derive_outbound_status(lines: Iterable[Tuple[int, int]]) -> str:
    """Status from (ordered_qty, picked_qty) pairs; same shape as the inbound rule."""
    pairs = [(int(ordered or 0), int(picked or 0)) for ordered, picked in lines]
    if pairs and all(picked >= ordered for ordered, picked in pairs):
        return "SHIPPED"
    if all(picked == 0 for _, picked in pairs):
        return "OPEN"
    return "PICKING"


def _order_query():
    return select(OutboundOrder).options(selectinload(OutboundOrder.lines))


async def _lock_order(db: AsyncSession, order_id: UUID) -> OutboundOrder:
    res = await db.execute(
        _order_query()
        .where(OutboundOrder.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    order = res.scalar_one_or_none()
    if order is None:
        raise errors.NotFound("Outbound order not found", order_id=order_id)
    return order


async def _lock_line(db: AsyncSession, order_id: UUID, line_id: UUID) -> OutboundOrderLine:
    res = await db.execute(
        select(OutboundOrderLine)
        .where(OutboundOrderLine.id == line_id, OutboundOrderLine.outbound_order_id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    line = res.scalar_one_or_none()
    if line is None:
        raise errors.NotFound(f"Line {line_id} not found on order", order_id=order_id, line_id=line_id)
    return line


async def create_order(
    db: AsyncSession,
    *,
    reference: str,
    warehouse_id: UUID,
    lines: List[Any],
    customer_name: Optional[str] = None,
    shipping_date: Optional[date] = None,
    actor_id: Optional[UUID] = None,
) -> OutboundOrder:
    validate_order_request(reference, warehouse_id, lines, "ordered_qty")
    reference = reference.strip()

    async with unit_of_work(db):
        await ensure_exists(db, Warehouse, warehouse_id, "warehouse_id")
        await ensure_items(db, [field(ln, "item_id") for ln in lines])
        dup = await db.execute(select(OutboundOrder.id).where(OutboundOrder.reference == reference))
        if dup.scalar_one_or_none():
            raise errors.ValidationError("reference already exists", field="reference", reference=reference)

        order = OutboundOrder(
            reference=reference,
            customer_name=customer_name,
            warehouse_id=warehouse_id,
            shipping_date=shipping_date,
            status="OPEN",
            created_by_user_id=actor_id,
        )
        order.lines = [
            OutboundOrderLine(item_id=field(ln, "item_id"), ordered_qty=int(field(ln, "ordered_qty")), picked_qty=0)
            for ln in lines
        ]
        db.add(order)
        await db.flush()
        log_audit(db, user_id=actor_id, action="CREATE", entity="outbound_orders", entity_id=order.id, details={"reference": reference})

    logger.info("Outbound order created", order_id=str(order.id), reference=reference, lines=len(order.lines))
    return order


def _normalize_picks(picks: Optional[List[Any]]) -> List[dict]:
    if not picks:
        raise errors.ValidationError("picks array is required", field="picks")
    out = []
    for i, p in enumerate(picks):
        require_fields(p, ("line_id", "picked_qty", "from_location_id"), index=i, kind="pick")
        out.append(
            {
                "line_id": field(p, "line_id"),
                "picked_qty": positive_int(field(p, "picked_qty"), name="picked_qty", index=i),
                "from_location_id": field(p, "from_location_id"),
            }
        )
    return out


async def pick(
    db: AsyncSession,
    *,
    order_id: UUID,
    picks: List[Any],
    actor_id: Optional[UUID] = None,
) -> OutboundOrder:
    normalized = _normalize_picks(picks)

    try:
        async with unit_of_work(db):
            order = await _lock_order(db, order_id)
            if order.status == "SHIPPED":
                raise errors.InvalidState("Outbound order is already shipped", order_id=order_id, status=order.status)

            for p in normalized:
                line = await _lock_line(db, order_id, p["line_id"])
                location = await ensure_exists(db, Location, p["from_location_id"], "location_id")
                if location.warehouse_id != order.warehouse_id:
                    raise errors.ValidationError(
                        "from_location_id belongs to another warehouse",
                        field="from_location_id",
                        line_id=line.id,
                        location_id=location.id,
                    )

                record = await ledger.lock_stock(db, line.item_id, location.id)
                available = int(record.quantity) if record is not None else 0
                if available < p["picked_qty"]:
                    raise errors.InsufficientStock(
                        "Insufficient stock at source location",
                        line_id=line.id,
                        item_id=line.item_id,
                        location_id=location.id,
                        requested=p["picked_qty"],
                        available=available,
                    )

                await ledger.adjust(db, item_id=line.item_id, location_id=location.id, delta=-p["picked_qty"])
                ledger.record_movement(
                    db,
                    item_id=line.item_id,
                    quantity=p["picked_qty"],
                    movement_type="PICK",
                    from_location_id=location.id,
                    source_type="outbound_order",
                    source_id=order.id,
                    actor_id=actor_id,
                )
                line.picked_qty = int(line.picked_qty or 0) + p["picked_qty"]

            order.status = derive_outbound_status((ln.ordered_qty, ln.picked_qty) for ln in order.lines)
            log_audit(db, user_id=actor_id, action="PICK", entity="outbound_orders", entity_id=order.id, details={"picks": normalized})
    except errors.WmsError as e:
        logger.warning("Picks rejected", order_id=str(order_id), error=e.code, detail=e.message)
        raise

    logger.info("Picks posted", order_id=str(order.id), picks=len(normalized), status=order.status)
    return order


async def get_order(db: AsyncSession, order_id: UUID) -> OutboundOrder:
    res = await db.execute(_order_query().where(OutboundOrder.id == order_id))
    order = res.scalar_one_or_none()
    if order is None:
        raise errors.NotFound("Outbound order not found", order_id=order_id)
    return order


async def list_orders(
    db: AsyncSession,
    status: Optional[str] = None,
    warehouse_id: Optional[UUID] = None,
) -> List[OutboundOrder]:
    stmt = _order_query().order_by(OutboundOrder.created_at.desc())
    if status:
        stmt = stmt.where(OutboundOrder.status == status)
    if warehouse_id:
        stmt = stmt.where(OutboundOrder.warehouse_id == warehouse_id)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def picking_suggestions(db: AsyncSession, order_id: UUID) -> List[dict]:
    """Matched picking rule plus the unbatched stock the order's warehouse holds, largest first."""
    order = await get_order(db, order_id)
    rule_set = await rules.load_rules(db, "PICKING")

    item_ids = [ln.item_id for ln in order.lines]
    items = {}
    candidates: dict = {}
    if item_ids:
        res = await db.execute(select(Item).where(Item.id.in_(item_ids)))
        items = {it.id: it for it in res.scalars().all()}

        res = await db.execute(
            select(StockRecord, Location.code)
            .join(Location, StockRecord.location_id == Location.id)
            .where(
                StockRecord.item_id.in_(item_ids),
                Location.warehouse_id == order.warehouse_id,
                StockRecord.batch_number.is_(None),
                StockRecord.expiration_date.is_(None),
                StockRecord.quantity > 0,
            )
            .order_by(StockRecord.quantity.desc(), Location.code)
        )
        for record, code in res.all():
            candidates.setdefault(record.item_id, []).append(
                {"location_id": record.location_id, "location_code": code, "quantity": int(record.quantity)}
            )

    out = []
    for ln in order.lines:
        remaining = int(ln.ordered_qty) - int(ln.picked_qty or 0)
        if remaining <= 0:
            continue
        it = items.get(ln.item_id)
        attributes = {
            "item_id": ln.item_id,
            "sku": getattr(it, "sku", None),
            "unit": getattr(it, "unit", None),
            "warehouse_id": order.warehouse_id,
            "customer_name": order.customer_name,
        }
        out.append(
            {
                "line_id": ln.id,
                "item_id": ln.item_id,
                "sku": attributes["sku"],
                "remaining_qty": remaining,
                "suggestion": rules.suggest_picking(rule_set, attributes),
                "candidates": candidates.get(ln.item_id, []),
            }
        )
    return out
