from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, require_admin, require_operator
from db.database import get_async_session
from db.users import User
from schemas.catalog import (
    ItemCreate,
    ItemRead,
    ItemUpdate,
    LocationCreate,
    LocationRead,
    PolicyRead,
    PolicyUpsert,
    WarehouseCreate,
    WarehouseRead,
)
from services import catalog

router = APIRouter()


@router.get("/items", response_model=List[ItemRead])
async def list_items(
    search: Optional[str] = None,
    include_inactive: bool = True,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    items = await catalog.list_items(db, search=search, include_inactive=include_inactive)
    return [ItemRead(**i.to_schema) for i in items]


@router.post("/items", response_model=ItemRead, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: ItemCreate,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    item = await catalog.create_item(db, **payload.model_dump(), actor_id=user.id)
    return ItemRead(**item.to_schema)


@router.patch("/items/{item_id}", response_model=ItemRead)
async def update_item(
    item_id: UUID,
    payload: ItemUpdate,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    item = await catalog.update_item(db, item_id, payload.model_dump(exclude_unset=True), actor_id=user.id)
    return ItemRead(**item.to_schema)


@router.post("/items/{item_id}/deactivate", response_model=ItemRead)
async def deactivate_item(
    item_id: UUID,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    item = await catalog.deactivate_item(db, item_id, actor_id=user.id)
    return ItemRead(**item.to_schema)


@router.get("/warehouses", response_model=List[WarehouseRead])
async def list_warehouses(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return [WarehouseRead(**w.to_schema) for w in await catalog.list_warehouses(db)]


@router.post("/warehouses", response_model=WarehouseRead, status_code=status.HTTP_201_CREATED)
async def create_warehouse(
    payload: WarehouseCreate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    wh = await catalog.create_warehouse(db, **payload.model_dump(), actor_id=user.id)
    return WarehouseRead(**wh.to_schema)


@router.get("/warehouses/{warehouse_id}/locations", response_model=List[LocationRead])
async def list_locations(
    warehouse_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return [LocationRead(**loc.to_schema) for loc in await catalog.list_locations(db, warehouse_id)]


@router.post("/locations", response_model=LocationRead, status_code=status.HTTP_201_CREATED)
async def create_location(
    payload: LocationCreate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    loc = await catalog.create_location(db, **payload.model_dump(), actor_id=user.id)
    return LocationRead(**loc.to_schema)


@router.put("/locations/{location_id}/policy", response_model=PolicyRead)
async def upsert_policy(
    location_id: UUID,
    payload: PolicyUpsert,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    policy = await catalog.upsert_policy(
        db, location_id, min_qty=payload.min_qty, max_qty=payload.max_qty, actor_id=user.id
    )
    return PolicyRead(**policy.to_schema)


@router.get("/policies", response_model=List[PolicyRead])
async def list_policies(
    warehouse_id: Optional[UUID] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return [PolicyRead(**p.to_schema) for p in await catalog.list_policies(db, warehouse_id=warehouse_id)]
