import asyncio
import sys
from pathlib import Path

"""
Seed a demo warehouse (locations, items, a policy, a putaway rule, one inbound order).

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`

Runs through the services, so it writes movements and audit rows like the API would.
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import select

from core.logging import configure_logging
from db.database import async_session_maker, create_db_and_tables
from db.models import Item, Location, Warehouse
from services import catalog, inbound, rules


LOCATIONS = [
    ("RCV-01", "RECEIVING", None),
    ("A-01-01", "STORAGE", 500),
    ("A-01-02", "STORAGE", 500),
    ("P-01", "PICKING", 100),
    ("SHP-01", "SHIPPING", None),
]

ITEMS = [
    ("SKU-1001", "Cardboard box 40x30", "PCS", "4006381333931"),
    ("SKU-1002", "Packing tape 50m", "ROLL", "4006381333948"),
    ("SKU-2001", "Euro pallet", "PAL", None),
]


async def get_or_create_warehouse(session, code: str, name: str) -> Warehouse:
    res = await session.execute(select(Warehouse).where(Warehouse.code == code))
    wh = res.scalar_one_or_none()
    if wh:
        return wh
    return await catalog.create_warehouse(session, code=code, name=name, address="Demo street 1")


async def seed() -> None:
    configure_logging()
    await create_db_and_tables()

    async with async_session_maker() as session:
        wh = await get_or_create_warehouse(session, "WH-MAIN", "Main warehouse")

        res = await session.execute(select(Location).where(Location.warehouse_id == wh.id))
        locations = {loc.code: loc for loc in res.scalars().all()}
        for code, loc_type, capacity in LOCATIONS:
            if code not in locations:
                locations[code] = await catalog.create_location(
                    session, warehouse_id=wh.id, code=code, type=loc_type, capacity=capacity
                )

        res = await session.execute(select(Item))
        items = {it.sku: it for it in res.scalars().all()}
        for sku, name, unit, barcode in ITEMS:
            if sku not in items:
                items[sku] = await catalog.create_item(session, sku=sku, name=name, unit=unit, barcode=barcode)

        await catalog.upsert_policy(session, locations["P-01"].id, min_qty=20, max_qty=80)

        existing_rules = await rules.list_rules(session, rule_type="PUTAWAY")
        if not existing_rules:
            await rules.create_rule(
                session,
                name="Pallets to storage",
                strategy="FIXED_LOCATION",
                priority=10,
                criteria={"unit": "PAL"},
                target_location_id=locations["A-01-01"].id,
            )

        orders = await inbound.list_orders(session, warehouse_id=wh.id)
        if not orders:
            order = await inbound.create_order(
                session,
                reference="PO-DEMO-0001",
                warehouse_id=wh.id,
                supplier_name="Demo supplier",
                lines=[
                    {"item_id": items["SKU-1001"].id, "expected_qty": 200},
                    {"item_id": items["SKU-1002"].id, "expected_qty": 50},
                ],
            )
            await inbound.receive(
                session,
                order_id=order.id,
                receipts=[
                    {"line_id": order.lines[0].id, "received_qty": 120, "to_location_id": locations["RCV-01"].id},
                ],
            )

    print("Demo data seeded")


if __name__ == "__main__":
    asyncio.run(seed())
