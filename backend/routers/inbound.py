from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, require_operator
from db.database import get_async_session
from db.users import User
from schemas.orders import InboundOrderCreate, InboundOrderRead, LineSuggestion, ReceiveRequest
from services import inbound

router = APIRouter()


@router.get("", response_model=List[InboundOrderRead])
async def list_inbound_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    warehouse_id: Optional[UUID] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    orders = await inbound.list_orders(db, status=status_filter, warehouse_id=warehouse_id)
    return [InboundOrderRead(**o.to_schema) for o in orders]


@router.post("", response_model=InboundOrderRead, status_code=status.HTTP_201_CREATED)
async def create_inbound_order(
    payload: InboundOrderCreate,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    order = await inbound.create_order(
        db,
        reference=payload.reference,
        warehouse_id=payload.warehouse_id,
        lines=payload.lines,
        supplier_name=payload.supplier_name,
        expected_date=payload.expected_date,
        actor_id=user.id,
    )
    return InboundOrderRead(**order.to_schema)


@router.get("/{order_id}", response_model=InboundOrderRead)
async def get_inbound_order(
    order_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    order = await inbound.get_order(db, order_id)
    return InboundOrderRead(**order.to_schema)


@router.post("/{order_id}/receive", response_model=InboundOrderRead)
async def receive_inbound_order(
    order_id: UUID,
    payload: ReceiveRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    order = await inbound.receive(db, order_id=order_id, receipts=payload.receipts, actor_id=user.id)
    return InboundOrderRead(**order.to_schema)


@router.get("/{order_id}/putaway-suggestions", response_model=List[LineSuggestion])
async def get_putaway_suggestions(
    order_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return [LineSuggestion(**s) for s in await inbound.putaway_suggestions(db, order_id)]
