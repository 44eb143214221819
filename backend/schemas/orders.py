from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


# Line fields stay optional here so missing values reach the services, which
# answer with a ValidationError naming the offending line.


class InboundLineCreate(BaseModel):
    item_id: Optional[UUID] = None
    expected_qty: Optional[int] = None


class InboundOrderCreate(BaseModel):
    reference: str
    warehouse_id: UUID
    supplier_name: Optional[str] = None
    expected_date: Optional[date] = None
    lines: List[InboundLineCreate] = []


class InboundLineRead(BaseModel):
    id: UUID
    item_id: UUID
    expected_qty: int
    received_qty: int


class InboundOrderRead(BaseModel):
    id: UUID
    reference: str
    supplier_name: Optional[str] = None
    warehouse_id: UUID
    expected_date: Optional[date] = None
    status: str
    created_at: Optional[datetime] = None
    created_by_user_id: Optional[UUID] = None
    lines: List[InboundLineRead]


class Receipt(BaseModel):
    line_id: Optional[UUID] = None
    received_qty: Optional[int] = None
    to_location_id: Optional[UUID] = None
    batch_number: Optional[str] = None
    expiration_date: Optional[date] = None

    @field_validator("batch_number")
    @classmethod
    def _blank_batch(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class ReceiveRequest(BaseModel):
    receipts: List[Receipt] = []


class OutboundLineCreate(BaseModel):
    item_id: Optional[UUID] = None
    ordered_qty: Optional[int] = None


class OutboundOrderCreate(BaseModel):
    reference: str
    warehouse_id: UUID
    customer_name: Optional[str] = None
    shipping_date: Optional[date] = None
    lines: List[OutboundLineCreate] = []


class OutboundLineRead(BaseModel):
    id: UUID
    item_id: UUID
    ordered_qty: int
    picked_qty: int


class OutboundOrderRead(BaseModel):
    id: UUID
    reference: str
    customer_name: Optional[str] = None
    warehouse_id: UUID
    shipping_date: Optional[date] = None
    status: str
    created_at: Optional[datetime] = None
    created_by_user_id: Optional[UUID] = None
    lines: List[OutboundLineRead]


class Pick(BaseModel):
    line_id: Optional[UUID] = None
    picked_qty: Optional[int] = None
    from_location_id: Optional[UUID] = None


class PickRequest(BaseModel):
    picks: List[Pick] = []


class Suggestion(BaseModel):
    rule_id: Optional[UUID] = None
    rule_name: Optional[str] = None
    strategy: str
    location_id: Optional[UUID] = None
    zone: Optional[str] = None
    is_default: bool


class LineSuggestion(BaseModel):
    line_id: UUID
    item_id: UUID
    sku: Optional[str] = None
    remaining_qty: int
    suggestion: Suggestion
    candidates: List[Dict[str, Any]] = []
