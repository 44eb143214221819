from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


class StockRead(BaseModel):
    id: UUID
    item_id: UUID
    sku: Optional[str] = None
    name: Optional[str] = None
    location_id: UUID
    location_code: Optional[str] = None
    warehouse_id: Optional[UUID] = None
    quantity: int
    batch_number: Optional[str] = None
    expiration_date: Optional[date] = None
    updated_at: Optional[datetime] = None


class MovementRead(BaseModel):
    id: UUID
    item_id: UUID
    sku: Optional[str] = None
    name: Optional[str] = None
    from_location_id: Optional[UUID] = None
    from_location_code: Optional[str] = None
    to_location_id: Optional[UUID] = None
    to_location_code: Optional[str] = None
    batch_number: Optional[str] = None
    expiration_date: Optional[date] = None
    quantity: int
    movement_type: str
    source_type: Optional[str] = None
    source_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    created_by_user_id: Optional[UUID] = None


class MovementCreate(BaseModel):
    item_id: UUID
    quantity: int
    from_location_id: Optional[UUID] = None
    to_location_id: Optional[UUID] = None
    batch_number: Optional[str] = None
    expiration_date: Optional[date] = None

    @field_validator("batch_number")
    @classmethod
    def _blank_batch(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None
