from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, require_operator
from core.config import settings
from db.database import get_async_session
from db.users import User
from schemas.inventory import MovementCreate, MovementRead, StockRead
from services import ledger

router = APIRouter()


@router.get("/stock", response_model=List[StockRead])
async def get_stock(
    item_id: Optional[UUID] = None,
    warehouse_id: Optional[UUID] = None,
    location_id: Optional[UUID] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    rows = await ledger.query_stock(db, item_id=item_id, warehouse_id=warehouse_id, location_id=location_id)
    return [StockRead(**r) for r in rows]


@router.get("/movements", response_model=List[MovementRead])
async def list_movements(
    limit: int = Query(200, ge=1),
    offset: int = Query(0, ge=0),
    item_id: Optional[UUID] = None,
    location_id: Optional[UUID] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    limit = min(limit, settings.movements_max_page)
    rows = await ledger.list_movements(db, limit=limit, offset=offset, item_id=item_id, location_id=location_id)
    return [MovementRead(**r) for r in rows]


@router.post("/movements", response_model=MovementRead, status_code=status.HTTP_201_CREATED)
async def create_movement(
    payload: MovementCreate,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    mv = await ledger.move_stock(
        db,
        item_id=payload.item_id,
        quantity=payload.quantity,
        from_location_id=payload.from_location_id,
        to_location_id=payload.to_location_id,
        batch_number=payload.batch_number,
        expiration_date=payload.expiration_date,
        actor_id=user.id,
    )
    return MovementRead(**mv.to_schema)
