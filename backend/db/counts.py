import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship
from .database import Base, utcnow


class InventoryCount(Base):
    """A counting campaign over one warehouse. Immutable once CLOSED."""
    __tablename__ = "inventory_counts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    warehouse_id = Column(Uuid, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(Text, nullable=False, default="OPEN", index=True)  # OPEN|CLOSED
    opened_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    warehouse = relationship("Warehouse")
    lines = relationship("CountLine", back_populates="campaign", cascade="all, delete-orphan")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "status": self.status,
            "opened_at": self.opened_at,
            "closed_at": self.closed_at,
            "created_by_user_id": self.created_by_user_id,
            "lines": [ln.to_schema for ln in self.lines],
        }


class CountLine(Base):
    __tablename__ = "inventory_count_lines"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inventory_count_id = Column(Uuid, ForeignKey("inventory_counts.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True)

    counted_qty = Column(Integer, nullable=False)
    system_qty = Column(Integer, nullable=False)  # snapshot of the unbatched balance when counted
    difference = Column(Integer, nullable=False)  # counted - system
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    campaign = relationship("InventoryCount", back_populates="lines")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "item_id": self.item_id,
            "location_id": self.location_id,
            "counted_qty": int(self.counted_qty),
            "system_qty": int(self.system_qty),
            "difference": int(self.difference),
        }
