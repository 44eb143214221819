from typing import Any, Dict, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


RuleType = Literal["PUTAWAY", "PICKING"]


class RuleRead(BaseModel):
    id: UUID
    name: str
    rule_type: str
    priority: int
    is_active: bool
    criteria: Dict[str, Any] = {}
    strategy: str
    target_location_id: Optional[UUID] = None
    target_zone: Optional[str] = None


class RuleCreate(BaseModel):
    name: str
    strategy: str
    rule_type: RuleType = "PUTAWAY"
    priority: int = 0
    criteria: Dict[str, Any] = {}
    target_location_id: Optional[UUID] = None
    target_zone: Optional[str] = None
    is_active: bool = True

    @field_validator("name", "strategy")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class SuggestRequest(BaseModel):
    attributes: Dict[str, Any] = {}
