import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from .database import Base, utcnow


class OutboundOrder(Base):
    __tablename__ = "outbound_orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reference = Column(String, nullable=False, unique=True, index=True)
    customer_name = Column(String, nullable=True)
    warehouse_id = Column(Uuid, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    shipping_date = Column(Date, nullable=True, index=True)
    status = Column(Text, nullable=False, default="OPEN", index=True)  # OPEN|PICKING|SHIPPED
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    warehouse = relationship("Warehouse")
    lines = relationship("OutboundOrderLine", back_populates="order", cascade="all, delete-orphan")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "reference": self.reference,
            "customer_name": self.customer_name,
            "warehouse_id": self.warehouse_id,
            "shipping_date": self.shipping_date,
            "status": self.status,
            "created_at": self.created_at,
            "created_by_user_id": self.created_by_user_id,
            "lines": [ln.to_schema for ln in self.lines],
        }


class OutboundOrderLine(Base):
    __tablename__ = "outbound_order_lines"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    outbound_order_id = Column(Uuid, ForeignKey("outbound_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    ordered_qty = Column(Integer, nullable=False)
    picked_qty = Column(Integer, nullable=False, default=0)

    order = relationship("OutboundOrder", back_populates="lines")
    item = relationship("Item")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "item_id": self.item_id,
            "ordered_qty": int(self.ordered_qty),
            "picked_qty": int(self.picked_qty or 0),
        }
