from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class CountOpen(BaseModel):
    warehouse_id: UUID


class CountLineCreate(BaseModel):
    item_id: Optional[UUID] = None
    location_id: Optional[UUID] = None
    counted_qty: Optional[int] = None


class CountLinesRequest(BaseModel):
    lines: List[CountLineCreate] = []


class CountLineRead(BaseModel):
    id: UUID
    item_id: UUID
    location_id: UUID
    counted_qty: int
    system_qty: int
    difference: int


class CountRead(BaseModel):
    id: UUID
    warehouse_id: UUID
    status: str
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_by_user_id: Optional[UUID] = None
    lines: List[CountLineRead] = []
