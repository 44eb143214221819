from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, require_admin
from db.database import get_async_session
from db.users import User
from schemas.orders import Suggestion
from schemas.rules import RuleCreate, RuleRead, SuggestRequest
from services import rules

router = APIRouter()


@router.get("", response_model=List[RuleRead])
async def list_rules(
    rule_type: Optional[str] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return [RuleRead(**r.to_schema) for r in await rules.list_rules(db, rule_type=rule_type)]


@router.post("", response_model=RuleRead, status_code=status.HTTP_201_CREATED)
async def create_rule(
    payload: RuleCreate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    rule = await rules.create_rule(db, **payload.model_dump(), actor_id=user.id)
    return RuleRead(**rule.to_schema)


@router.post("/putaway/suggest", response_model=Suggestion)
async def suggest_putaway(
    payload: SuggestRequest,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    rule_set = await rules.load_rules(db, "PUTAWAY")
    return Suggestion(**rules.suggest_putaway(rule_set, payload.attributes))


@router.post("/picking/suggest", response_model=Suggestion)
async def suggest_picking(
    payload: SuggestRequest,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    rule_set = await rules.load_rules(db, "PICKING")
    return Suggestion(**rules.suggest_picking(rule_set, payload.attributes))
