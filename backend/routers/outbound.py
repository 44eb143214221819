from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, require_operator
from db.database import get_async_session
from db.users import User
from schemas.orders import LineSuggestion, OutboundOrderCreate, OutboundOrderRead, PickRequest
from services import outbound

router = APIRouter()


@router.get("", response_model=List[OutboundOrderRead])
async def list_outbound_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    warehouse_id: Optional[UUID] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    orders = await outbound.list_orders(db, status=status_filter, warehouse_id=warehouse_id)
    return [OutboundOrderRead(**o.to_schema) for o in orders]


@router.post("", response_model=OutboundOrderRead, status_code=status.HTTP_201_CREATED)
async def create_outbound_order(
    payload: OutboundOrderCreate,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    order = await outbound.create_order(
        db,
        reference=payload.reference,
        warehouse_id=payload.warehouse_id,
        lines=payload.lines,
        customer_name=payload.customer_name,
        shipping_date=payload.shipping_date,
        actor_id=user.id,
    )
    return OutboundOrderRead(**order.to_schema)


@router.get("/{order_id}", response_model=OutboundOrderRead)
async def get_outbound_order(
    order_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    order = await outbound.get_order(db, order_id)
    return OutboundOrderRead(**order.to_schema)


@router.post("/{order_id}/pick", response_model=OutboundOrderRead)
async def pick_outbound_order(
    order_id: UUID,
    payload: PickRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    order = await outbound.pick(db, order_id=order_id, picks=payload.picks, actor_id=user.id)
    return OutboundOrderRead(**order.to_schema)


@router.get("/{order_id}/picking-suggestions", response_model=List[LineSuggestion])
async def get_picking_suggestions(
    order_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return [LineSuggestion(**s) for s in await outbound.picking_suggestions(db, order_id)]
