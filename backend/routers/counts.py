from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, require_admin, require_operator
from db.database import get_async_session
from db.users import User
from schemas.counts import CountLineRead, CountLinesRequest, CountOpen, CountRead
from services import counts

router = APIRouter()


@router.get("", response_model=List[CountRead])
async def list_counts(
    warehouse_id: Optional[UUID] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    campaigns = await counts.list_campaigns(db, warehouse_id=warehouse_id, status=status_filter)
    return [CountRead(**c.to_schema) for c in campaigns]


@router.post("", response_model=CountRead, status_code=status.HTTP_201_CREATED)
async def open_count(
    payload: CountOpen,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    campaign = await counts.open_campaign(db, payload.warehouse_id, actor_id=user.id)
    return CountRead(**campaign.to_schema)


@router.get("/{campaign_id}", response_model=CountRead)
async def get_count(
    campaign_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    campaign = await counts.get_campaign(db, campaign_id)
    return CountRead(**campaign.to_schema)


@router.post("/{campaign_id}/lines", response_model=List[CountLineRead], status_code=status.HTTP_201_CREATED)
async def record_count_lines(
    campaign_id: UUID,
    payload: CountLinesRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_async_session),
):
    lines = await counts.record_lines(db, campaign_id, payload.lines, actor_id=user.id)
    return [CountLineRead(**ln.to_schema) for ln in lines]


@router.post("/{campaign_id}/close", response_model=CountRead)
async def close_count(
    campaign_id: UUID,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    campaign = await counts.close_campaign(db, campaign_id, actor_id=user.id)
    return CountRead(**campaign.to_schema)
