"""
Inventory reconciliation campaigns.

Count lines snapshot the system quantity at the moment they are recorded and
keep the difference; they never adjust the ledger. A CLOSED campaign rejects
any further lines.
"""

from typing import Any, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core import errors
from db.database import unit_of_work, utcnow
from db.models import CountLine, InventoryCount, Item, Location, Warehouse
from services import ledger
from services.audit import log_audit
from services.validation import ensure_exists, field, require_fields

logger = structlog.get_logger(__name__)


def _campaign_query():
    return select(InventoryCount).options(selectinload(InventoryCount.lines))


async def _lock_campaign(db: AsyncSession, campaign_id: UUID) -> InventoryCount:
    res = await db.execute(
        _campaign_query()
        .where(InventoryCount.id == campaign_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    campaign = res.scalar_one_or_none()
    if campaign is None:
        raise errors.NotFound("Inventory count not found", campaign_id=campaign_id)
    return campaign


async def open_campaign(db: AsyncSession, warehouse_id: UUID, actor_id: Optional[UUID] = None) -> InventoryCount:
    if not warehouse_id:
        raise errors.ValidationError("warehouse_id is required", field="warehouse_id")

    async with unit_of_work(db):
        await ensure_exists(db, Warehouse, warehouse_id, "warehouse_id")
        campaign = InventoryCount(warehouse_id=warehouse_id, status="OPEN", created_by_user_id=actor_id)
        campaign.lines = []
        db.add(campaign)
        await db.flush()
        log_audit(db, user_id=actor_id, action="CREATE", entity="inventory_counts", entity_id=campaign.id, details={"warehouse_id": warehouse_id})

    logger.info("Inventory count opened", campaign_id=str(campaign.id), warehouse_id=str(warehouse_id))
    return campaign


def _normalize_lines(lines: Optional[List[Any]]) -> List[dict]:
    if not lines:
        raise errors.ValidationError("lines array is required", field="lines")
    out = []
    for i, ln in enumerate(lines):
        require_fields(ln, ("item_id", "location_id", "counted_qty"), index=i, kind="count line")
        try:
            counted = int(field(ln, "counted_qty"))
        except (TypeError, ValueError):
            raise errors.ValidationError("counted_qty must be an integer", field="counted_qty", index=i)
        if counted < 0:
            raise errors.ValidationError("counted_qty must be >= 0", field="counted_qty", index=i, value=counted)
        out.append({"item_id": field(ln, "item_id"), "location_id": field(ln, "location_id"), "counted_qty": counted})
    return out


async def record_lines(
    db: AsyncSession,
    campaign_id: UUID,
    lines: List[Any],
    actor_id: Optional[UUID] = None,
) -> List[CountLine]:
    normalized = _normalize_lines(lines)

    try:
        async with unit_of_work(db):
            campaign = await _lock_campaign(db, campaign_id)
            if campaign.status == "CLOSED":
                raise errors.InvalidState("Inventory count is closed", campaign_id=campaign_id, status=campaign.status)

            created = []
            for ln in normalized:
                await ensure_exists(db, Item, ln["item_id"], "item_id")
                await ensure_exists(db, Location, ln["location_id"], "location_id")
                system_qty = await ledger.stock_quantity(db, ln["item_id"], ln["location_id"])
                line = CountLine(
                    item_id=ln["item_id"],
                    location_id=ln["location_id"],
                    counted_qty=ln["counted_qty"],
                    system_qty=system_qty,
                    difference=ln["counted_qty"] - system_qty,
                )
                campaign.lines.append(line)
                created.append(line)

            await db.flush()
            log_audit(
                db,
                user_id=actor_id,
                action="COUNT",
                entity="inventory_counts",
                entity_id=campaign.id,
                details={"lines": [line.to_schema for line in created]},
            )
    except errors.WmsError as e:
        logger.warning("Count lines rejected", campaign_id=str(campaign_id), error=e.code, detail=e.message)
        raise

    logger.info(
        "Count lines recorded",
        campaign_id=str(campaign_id),
        lines=len(created),
        discrepancies=sum(1 for line in created if line.difference != 0),
    )
    return created


async def close_campaign(db: AsyncSession, campaign_id: UUID, actor_id: Optional[UUID] = None) -> InventoryCount:
    async with unit_of_work(db):
        campaign = await _lock_campaign(db, campaign_id)
        if campaign.status == "CLOSED":
            raise errors.InvalidState("Inventory count is already closed", campaign_id=campaign_id)
        campaign.status = "CLOSED"
        campaign.closed_at = utcnow()
        log_audit(db, user_id=actor_id, action="CLOSE", entity="inventory_counts", entity_id=campaign.id)

    logger.info("Inventory count closed", campaign_id=str(campaign.id), lines=len(campaign.lines))
    return campaign


async def get_campaign(db: AsyncSession, campaign_id: UUID) -> InventoryCount:
    res = await db.execute(_campaign_query().where(InventoryCount.id == campaign_id))
    campaign = res.scalar_one_or_none()
    if campaign is None:
        raise errors.NotFound("Inventory count not found", campaign_id=campaign_id)
    return campaign


async def list_campaigns(
    db: AsyncSession,
    warehouse_id: Optional[UUID] = None,
    status: Optional[str] = None,
) -> List[InventoryCount]:
    stmt = _campaign_query().order_by(InventoryCount.opened_at.desc())
    if warehouse_id:
        stmt = stmt.where(InventoryCount.warehouse_id == warehouse_id)
    if status:
        stmt = stmt.where(InventoryCount.status == status)
    res = await db.execute(stmt)
    return list(res.scalars().all())
