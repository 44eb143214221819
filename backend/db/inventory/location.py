import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


LOCATION_TYPES = ("STORAGE", "PICKING", "RECEIVING", "SHIPPING", "QUARANTINE")


class Warehouse(Base):
    __tablename__ = "warehouses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    address = Column(Text, nullable=True)

    locations = relationship("Location", back_populates="warehouse")

    @property
    def to_schema(self):
        return {"id": self.id, "code": self.code, "name": self.name, "address": self.address}


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        UniqueConstraint("warehouse_id", "code", name="ux_locations_warehouse_code"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    warehouse_id = Column(Uuid, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    code = Column(String, nullable=False)
    # STORAGE | PICKING | RECEIVING | SHIPPING | QUARANTINE
    type = Column(String, nullable=False, index=True)
    capacity = Column(Integer, nullable=True)

    warehouse = relationship("Warehouse", back_populates="locations")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "code": self.code,
            "type": self.type,
            "capacity": self.capacity,
        }
