"""Master data: items, warehouses, locations and replenishment policies."""

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core import errors
from db.database import unit_of_work
from db.inventory.location import LOCATION_TYPES
from db.models import Item, Location, ReplenishmentPolicy, Warehouse
from services.audit import log_audit
from services.validation import ensure_exists

logger = structlog.get_logger(__name__)

ITEM_FIELDS = ("sku", "name", "description", "unit", "barcode", "is_active")


def _required(value: Optional[str], name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise errors.ValidationError(f"{name} is required", field=name)
    return value


async def create_item(
    db: AsyncSession,
    *,
    sku: str,
    name: str,
    description: Optional[str] = None,
    unit: Optional[str] = None,
    barcode: Optional[str] = None,
    is_active: bool = True,
    actor_id: Optional[UUID] = None,
) -> Item:
    sku = _required(sku, "sku")
    name = _required(name, "name")

    async with unit_of_work(db):
        existing = await db.execute(select(Item.id).where(Item.sku == sku))
        if existing.scalar_one_or_none():
            raise errors.ValidationError("sku already exists", field="sku", sku=sku)
        item = Item(
            sku=sku,
            name=name,
            description=description,
            unit=(unit or "").strip() or "PCS",
            barcode=barcode or None,
            is_active=is_active,
        )
        db.add(item)
        await db.flush()
        log_audit(db, user_id=actor_id, action="CREATE", entity="items", entity_id=item.id, details=item.to_schema)

    logger.info("Item created", item_id=str(item.id), sku=sku)
    return item


async def list_items(db: AsyncSession, search: Optional[str] = None, include_inactive: bool = True) -> List[Item]:
    stmt = select(Item).order_by(Item.sku)
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Item.sku).like(pattern),
                func.lower(Item.name).like(pattern),
                func.lower(Item.barcode).like(pattern),
            )
        )
    if not include_inactive:
        stmt = stmt.where(Item.is_active == True)  # noqa: E712
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def update_item(db: AsyncSession, item_id: UUID, data: Dict[str, Any], actor_id: Optional[UUID] = None) -> Item:
    """Partial update; keys missing from `data` (or None) keep their stored value."""
    async with unit_of_work(db):
        item = await ensure_exists(db, Item, item_id, "item_id")
        changes = {k: v for k, v in data.items() if k in ITEM_FIELDS and v is not None}
        if "sku" in changes:
            changes["sku"] = _required(changes["sku"], "sku")
            if changes["sku"] != item.sku:
                clash = await db.execute(select(Item.id).where(Item.sku == changes["sku"]))
                if clash.scalar_one_or_none():
                    raise errors.ValidationError("sku already exists", field="sku", sku=changes["sku"])
        if "name" in changes:
            changes["name"] = _required(changes["name"], "name")
        for key, value in changes.items():
            setattr(item, key, value)
        log_audit(db, user_id=actor_id, action="UPDATE", entity="items", entity_id=item.id, details=changes)

    logger.info("Item updated", item_id=str(item.id), fields=sorted(changes))
    return item


async def deactivate_item(db: AsyncSession, item_id: UUID, actor_id: Optional[UUID] = None) -> Item:
    async with unit_of_work(db):
        item = await ensure_exists(db, Item, item_id, "item_id")
        item.is_active = False
        log_audit(db, user_id=actor_id, action="DEACTIVATE", entity="items", entity_id=item.id)

    logger.info("Item deactivated", item_id=str(item.id))
    return item


async def create_warehouse(
    db: AsyncSession,
    *,
    code: str,
    name: str,
    address: Optional[str] = None,
    actor_id: Optional[UUID] = None,
) -> Warehouse:
    code = _required(code, "code")
    name = _required(name, "name")

    async with unit_of_work(db):
        existing = await db.execute(select(Warehouse.id).where(Warehouse.code == code))
        if existing.scalar_one_or_none():
            raise errors.ValidationError("warehouse code already exists", field="code", code=code)
        wh = Warehouse(code=code, name=name, address=address)
        db.add(wh)
        await db.flush()
        log_audit(db, user_id=actor_id, action="CREATE", entity="warehouses", entity_id=wh.id, details=wh.to_schema)

    logger.info("Warehouse created", warehouse_id=str(wh.id), code=code)
    return wh


async def list_warehouses(db: AsyncSession) -> List[Warehouse]:
    res = await db.execute(select(Warehouse).order_by(Warehouse.code))
    return list(res.scalars().all())


async def create_location(
    db: AsyncSession,
    *,
    warehouse_id: UUID,
    code: str,
    type: str,
    capacity: Optional[int] = None,
    actor_id: Optional[UUID] = None,
) -> Location:
    if not warehouse_id:
        raise errors.ValidationError("warehouse_id is required", field="warehouse_id")
    code = _required(code, "code")
    location_type = _required(type, "type").upper()
    if location_type not in LOCATION_TYPES:
        raise errors.ValidationError(
            f"type must be one of {', '.join(LOCATION_TYPES)}", field="type", value=type
        )
    if capacity is not None and int(capacity) < 0:
        raise errors.ValidationError("capacity must be >= 0", field="capacity", value=capacity)

    async with unit_of_work(db):
        await ensure_exists(db, Warehouse, warehouse_id, "warehouse_id")
        existing = await db.execute(
            select(Location.id).where(Location.warehouse_id == warehouse_id, Location.code == code)
        )
        if existing.scalar_one_or_none():
            raise errors.ValidationError("location code already exists in warehouse", field="code", code=code)
        loc = Location(warehouse_id=warehouse_id, code=code, type=location_type, capacity=capacity)
        db.add(loc)
        await db.flush()
        log_audit(db, user_id=actor_id, action="CREATE", entity="locations", entity_id=loc.id, details=loc.to_schema)

    logger.info("Location created", location_id=str(loc.id), warehouse_id=str(warehouse_id), code=code)
    return loc


async def list_locations(db: AsyncSession, warehouse_id: UUID) -> List[Location]:
    await ensure_exists(db, Warehouse, warehouse_id, "warehouse_id")
    res = await db.execute(select(Location).where(Location.warehouse_id == warehouse_id).order_by(Location.code))
    return list(res.scalars().all())


async def upsert_policy(
    db: AsyncSession,
    location_id: UUID,
    *,
    min_qty: int,
    max_qty: Optional[int] = None,
    actor_id: Optional[UUID] = None,
) -> ReplenishmentPolicy:
    if min_qty is None or int(min_qty) < 0:
        raise errors.ValidationError("min_qty must be >= 0", field="min_qty", value=min_qty)
    if max_qty is not None and int(max_qty) < int(min_qty):
        raise errors.ValidationError("max_qty must be >= min_qty", field="max_qty", min_qty=min_qty, max_qty=max_qty)

    async with unit_of_work(db):
        await ensure_exists(db, Location, location_id, "location_id")
        res = await db.execute(
            select(ReplenishmentPolicy).where(ReplenishmentPolicy.location_id == location_id).with_for_update()
        )
        policy = res.scalar_one_or_none()
        if policy is None:
            policy = ReplenishmentPolicy(location_id=location_id)
            db.add(policy)
        policy.min_qty = int(min_qty)
        policy.max_qty = int(max_qty) if max_qty is not None else None
        await db.flush()
        log_audit(db, user_id=actor_id, action="UPSERT", entity="replenishment_policies", entity_id=policy.id, details=policy.to_schema)

    logger.info("Replenishment policy saved", location_id=str(location_id), min_qty=policy.min_qty, max_qty=policy.max_qty)
    return policy


async def list_policies(db: AsyncSession, warehouse_id: Optional[UUID] = None) -> List[ReplenishmentPolicy]:
    stmt = (
        select(ReplenishmentPolicy)
        .join(Location, ReplenishmentPolicy.location_id == Location.id)
        .order_by(Location.code)
    )
    if warehouse_id:
        stmt = stmt.where(Location.warehouse_id == warehouse_id)
    res = await db.execute(stmt)
    return list(res.scalars().all())
