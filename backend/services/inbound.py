"""
Inbound fulfillment: purchase/receipt orders and their lines.

Order status is never written by clients; it is recomputed from line state
inside the same transaction that changes the lines.
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
from db.models import InboundOrder, InboundOrderLine, Item, Location, PutawayRule, Warehouse
from services import ledger, rules
from services.audit import log_audit
from services.validation import ensure_exists, ensure_items, field, positive_int, require_fields, validate_order_request

logger = structlog.get_logger(__name__)

INBOUND_STATUSES = ("OPEN", "IN_PROGRESS", "CLOSED")


def derive_inbound_status(lines: Iterable[Tuple[int, int]]) -> str:
    """Status from (expected_qty, received_qty) pairs.

    CLOSED once every line has received >= expected, OPEN while nothing has
    been received on any line, IN_PROGRESS otherwise.
    """
    pairs = [(int(expected or 0), int(received or 0)) for expected, received in lines]
    if pairs and all(received >= expected for expected, received in pairs):
        return "CLOSED"
    if all(received == 0 for _, received in pairs):
        return "OPEN"
    return "IN_PROGRESS"


def _order_query():
    return select(InboundOrder).options(selectinload(InboundOrder.lines))


async def _lock_order(db: AsyncSession, order_id: UUID) -> InboundOrder:
    res = await db.execute(
        _order_query()
        .where(InboundOrder.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    order = res.scalar_one_or_none()
    if order is None:
        raise errors.NotFound("Inbound order not found", order_id=order_id)
    return order


async def _lock_line(db: AsyncSession, order_id: UUID, line_id: UUID) -> InboundOrderLine:
    res = await db.execute(
        select(InboundOrderLine)
        .where(InboundOrderLine.id == line_id, InboundOrderLine.inbound_order_id == order_id)
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
    supplier_name: Optional[str] = None,
    expected_date: Optional[date] = None,
    actor_id: Optional[UUID] = None,
) -> InboundOrder:
    validate_order_request(reference, warehouse_id, lines, "expected_qty")
    reference = reference.strip()

    async with unit_of_work(db):
        await ensure_exists(db, Warehouse, warehouse_id, "warehouse_id")
        await ensure_items(db, [field(ln, "item_id") for ln in lines])
        dup = await db.execute(select(InboundOrder.id).where(InboundOrder.reference == reference))
        if dup.scalar_one_or_none():
            raise errors.ValidationError("reference already exists", field="reference", reference=reference)

        order = InboundOrder(
            reference=reference,
            supplier_name=supplier_name,
            warehouse_id=warehouse_id,
            expected_date=expected_date,
            status="OPEN",
            created_by_user_id=actor_id,
        )
        order.lines = [
            InboundOrderLine(item_id=field(ln, "item_id"), expected_qty=int(field(ln, "expected_qty")), received_qty=0)
            for ln in lines
        ]
        db.add(order)
        await db.flush()
        log_audit(db, user_id=actor_id, action="CREATE", entity="inbound_orders", entity_id=order.id, details={"reference": reference})

    logger.info("Inbound order created", order_id=str(order.id), reference=reference, lines=len(order.lines))
    return order


def _normalize_receipts(receipts: Optional[List[Any]]) -> List[dict]:
    if not receipts:
        raise errors.ValidationError("receipts array is required", field="receipts")
    out = []
    for i, r in enumerate(receipts):
        require_fields(r, ("line_id", "received_qty", "to_location_id"), index=i, kind="receipt")
        out.append(
            {
                "line_id": field(r, "line_id"),
                "received_qty": positive_int(field(r, "received_qty"), name="received_qty", index=i),
                "to_location_id": field(r, "to_location_id"),
                "batch_number": field(r, "batch_number") or None,
                "expiration_date": field(r, "expiration_date"),
            }
        )
    return out


async def receive(
    db: AsyncSession,
    *,
    order_id: UUID,
    receipts: List[Any],
    actor_id: Optional[UUID] = None,
) -> InboundOrder:
    """Post a batch of receipts. All or nothing: any failure rolls back every receipt."""
    normalized = _normalize_receipts(receipts)

    try:
        async with unit_of_work(db):
            order = await _lock_order(db, order_id)
            if order.status == "CLOSED":
                raise errors.InvalidState("Inbound order is closed", order_id=order_id, status=order.status)

            for r in normalized:
                line = await _lock_line(db, order_id, r["line_id"])
                location = await ensure_exists(db, Location, r["to_location_id"], "location_id")
                if location.warehouse_id != order.warehouse_id:
                    raise errors.ValidationError(
                        "to_location_id belongs to another warehouse",
                        field="to_location_id",
                        line_id=line.id,
                        location_id=location.id,
                    )

                # No clamp against expected_qty: over-receipt is tolerated.
                line.received_qty = int(line.received_qty or 0) + r["received_qty"]

                await ledger.adjust(
                    db,
                    item_id=line.item_id,
                    location_id=location.id,
                    delta=r["received_qty"],
                    batch_number=r["batch_number"],
                    expiration_date=r["expiration_date"],
                )
                ledger.record_movement(
                    db,
                    item_id=line.item_id,
                    quantity=r["received_qty"],
                    movement_type="RECEIPT",
                    to_location_id=location.id,
                    batch_number=r["batch_number"],
                    expiration_date=r["expiration_date"],
                    source_type="inbound_order",
                    source_id=order.id,
                    actor_id=actor_id,
                )

            order.status = derive_inbound_status((ln.expected_qty, ln.received_qty) for ln in order.lines)
            log_audit(db, user_id=actor_id, action="RECEIVE", entity="inbound_orders", entity_id=order.id, details={"receipts": normalized})
    except errors.WmsError as e:
        logger.warning("Receipts rejected", order_id=str(order_id), error=e.code, detail=e.message)
        raise

    logger.info("Receipts posted", order_id=str(order.id), receipts=len(normalized), status=order.status)
    return order


async def get_order(db: AsyncSession, order_id: UUID) -> InboundOrder:
    res = await db.execute(_order_query().where(InboundOrder.id == order_id))
    order = res.scalar_one_or_none()
    if order is None:
        raise errors.NotFound("Inbound order not found", order_id=order_id)
    return order


async def list_orders(
    db: AsyncSession,
    status: Optional[str] = None,
    warehouse_id: Optional[UUID] = None,
) -> List[InboundOrder]:
    stmt = _order_query().order_by(InboundOrder.created_at.desc())
    if status:
        stmt = stmt.where(InboundOrder.status == status)
    if warehouse_id:
        stmt = stmt.where(InboundOrder.warehouse_id == warehouse_id)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def putaway_suggestions(db: AsyncSession, order_id: UUID) -> List[dict]:
    """Consult the putaway rules for every line that still expects goods."""
    order = await get_order(db, order_id)
    rule_set: List[PutawayRule] = await rules.load_rules(db, "PUTAWAY")
    items = {}
    item_ids = [ln.item_id for ln in order.lines]
    if item_ids:
        res = await db.execute(select(Item).where(Item.id.in_(item_ids)))
        items = {it.id: it for it in res.scalars().all()}

    out = []
    for ln in order.lines:
        remaining = int(ln.expected_qty) - int(ln.received_qty or 0)
        if remaining <= 0:
            continue
        it = items.get(ln.item_id)
        attributes = {
            "item_id": ln.item_id,
            "sku": getattr(it, "sku", None),
            "unit": getattr(it, "unit", None),
            "warehouse_id": order.warehouse_id,
            "supplier_name": order.supplier_name,
        }
        out.append(
            {
                "line_id": ln.id,
                "item_id": ln.item_id,
                "sku": attributes["sku"],
                "remaining_qty": remaining,
                "suggestion": rules.suggest_putaway(rule_set, attributes),
            }
        )
    return out
