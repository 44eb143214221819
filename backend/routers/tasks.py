from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, require_operator
from db.database import get_async_session
from db.users import User
from schemas.tasks import CycleCountScanRequest, TaskRead
from services import scanner

router = APIRouter()


@router.get("", response_model=List[TaskRead])
async def list_tasks(
    task_type: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    location_id: Optional[UUID] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    tasks = await scanner.list_tasks(db, task_type=task_type, status=status_filter, location_id=location_id)
    return [TaskRead(**t.to_schema) for t in tasks]


@router.post("/scan/replenishment", response_model=List[TaskRead], status_code=status.HTTP_201_CREATED)
async def scan_replenishment(
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    tasks = await scanner.scan_replenishment(db, actor_id=user.id)
    return [TaskRead(**t.to_schema) for t in tasks]


@router.post("/scan/cycle-count", response_model=List[TaskRead], status_code=status.HTTP_201_CREATED)
async def scan_cycle_count(
    payload: CycleCountScanRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    tasks = await scanner.scan_cycle_count(
        db,
        strategy=payload.strategy,
        limit=payload.limit,
        warehouse_id=payload.warehouse_id,
        skip_open=payload.skip_open,
        actor_id=user.id,
    )
    return [TaskRead(**t.to_schema) for t in tasks]
