from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class ItemRead(BaseModel):
    id: UUID
    sku: str
    name: str
    description: Optional[str] = None
    unit: str
    barcode: Optional[str] = None
    is_active: bool


class ItemCreate(BaseModel):
    sku: str
    name: str
    description: Optional[str] = None
    unit: Optional[str] = None
    barcode: Optional[str] = None
    is_active: bool = True


class ItemUpdate(BaseModel):
    sku: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    barcode: Optional[str] = None
    is_active: Optional[bool] = None


class WarehouseRead(BaseModel):
    id: UUID
    code: str
    name: str
    address: Optional[str] = None


class WarehouseCreate(BaseModel):
    code: str
    name: str
    address: Optional[str] = None


class LocationRead(BaseModel):
    id: UUID
    warehouse_id: UUID
    code: str
    type: str
    capacity: Optional[int] = None


class LocationCreate(BaseModel):
    warehouse_id: UUID
    code: str
    type: str  # STORAGE | PICKING | RECEIVING | SHIPPING | QUARANTINE
    capacity: Optional[int] = None


class PolicyRead(BaseModel):
    id: UUID
    location_id: UUID
    min_qty: int
    max_qty: Optional[int] = None


class PolicyUpsert(BaseModel):
    min_qty: int
    max_qty: Optional[int] = None
