"""
Putaway / picking rule matcher.

Rules are evaluated highest priority first; a rule matches when every
key/value of its `criteria` is present with the same value in the supplied
attributes. Matching is pure: no rule state is mutated.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core import errors
from core.config import settings
from db.database import unit_of_work
from db.models import Location, PutawayRule
from services.audit import log_audit

logger = structlog.get_logger(__name__)

RULE_TYPES = ("PUTAWAY", "PICKING")


def _normalize(value: Any) -> Any:
    # UUIDs and other scalars arrive as objects from the DB and as strings from JSON.
    if isinstance(value, UUID):
        return str(value)
    return value


def criteria_match(criteria: Mapping[str, Any], attributes: Mapping[str, Any]) -> bool:
    for key, expected in (criteria or {}).items():
        if key not in attributes:
            return False
        if _normalize(attributes[key]) != _normalize(expected):
            return False
    return True


def match_rule(rules: Iterable[PutawayRule], attributes: Mapping[str, Any]) -> Optional[PutawayRule]:
    active = [r for r in rules if r.is_active]
    # sorted() is stable, so equal priorities keep their load order
    for rule in sorted(active, key=lambda r: int(r.priority or 0), reverse=True):
        if criteria_match(rule.criteria or {}, attributes):
            return rule
    return None


def _suggestion(rule: PutawayRule) -> Dict[str, Any]:
    return {
        "rule_id": rule.id,
        "rule_name": rule.name,
        "strategy": rule.strategy,
        "location_id": rule.target_location_id,
        "zone": rule.target_zone,
        "is_default": False,
    }


def suggest_putaway(rules: Iterable[PutawayRule], attributes: Mapping[str, Any]) -> Dict[str, Any]:
    rule = match_rule(rules, attributes)
    if rule is not None:
        return _suggestion(rule)
    return {
        "rule_id": None,
        "rule_name": None,
        "strategy": "DEFAULT",
        "location_id": None,
        "zone": settings.default_putaway_zone,
        "is_default": True,
    }


def suggest_picking(rules: Iterable[PutawayRule], attributes: Mapping[str, Any]) -> Dict[str, Any]:
    rule = match_rule(rules, attributes)
    if rule is not None:
        return _suggestion(rule)
    return {
        "rule_id": None,
        "rule_name": None,
        "strategy": settings.default_picking_strategy,
        "location_id": None,
        "zone": None,
        "is_default": True,
    }


async def load_rules(db: AsyncSession, rule_type: str = "PUTAWAY") -> List[PutawayRule]:
    res = await db.execute(
        select(PutawayRule)
        .where(PutawayRule.rule_type == rule_type, PutawayRule.is_active == True)  # noqa: E712
        .order_by(PutawayRule.priority.desc())
    )
    return list(res.scalars().all())


async def list_rules(db: AsyncSession, rule_type: Optional[str] = None) -> List[PutawayRule]:
    stmt = select(PutawayRule).order_by(PutawayRule.rule_type, PutawayRule.priority.desc(), PutawayRule.name)
    if rule_type:
        stmt = stmt.where(PutawayRule.rule_type == rule_type)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def create_rule(
    db: AsyncSession,
    *,
    name: str,
    strategy: str,
    rule_type: str = "PUTAWAY",
    priority: int = 0,
    criteria: Optional[Dict[str, Any]] = None,
    target_location_id: Optional[UUID] = None,
    target_zone: Optional[str] = None,
    is_active: bool = True,
    actor_id: Optional[UUID] = None,
) -> PutawayRule:
    name = (name or "").strip()
    if not name:
        raise errors.ValidationError("name is required", field="name")
    if not (strategy or "").strip():
        raise errors.ValidationError("strategy is required", field="strategy")
    rule_type = (rule_type or "").strip().upper()
    if rule_type not in RULE_TYPES:
        raise errors.ValidationError(f"rule_type must be one of {', '.join(RULE_TYPES)}", field="rule_type")

    async with unit_of_work(db):
        if target_location_id and await db.get(Location, target_location_id) is None:
            raise errors.NotFound("Location not found", location_id=target_location_id)
        rule = PutawayRule(
            name=name,
            rule_type=rule_type,
            priority=int(priority or 0),
            is_active=bool(is_active),
            criteria={k: _normalize(v) for k, v in (criteria or {}).items()},
            strategy=strategy.strip().upper(),
            target_location_id=target_location_id,
            target_zone=target_zone,
        )
        db.add(rule)
        await db.flush()
        log_audit(db, user_id=actor_id, action="CREATE", entity="putaway_rules", entity_id=rule.id, details=rule.to_schema)

    logger.info("Rule created", rule_id=str(rule.id), rule_type=rule_type, priority=rule.priority)
    return rule
