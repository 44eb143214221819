import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from .database import Base, utcnow


class InboundOrder(Base):
    __tablename__ = "inbound_orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reference = Column(String, nullable=False, unique=True, index=True)
    supplier_name = Column(String, nullable=True)
    warehouse_id = Column(Uuid, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    expected_date = Column(Date, nullable=True, index=True)
    status = Column(Text, nullable=False, default="OPEN", index=True)  # OPEN|IN_PROGRESS|CLOSED
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    warehouse = relationship("Warehouse")
    lines = relationship("InboundOrderLine", back_populates="order", cascade="all, delete-orphan")

    @property
    def to_schema(self):
        # `lines` must already be loaded (selectinload); no lazy loads on AsyncSession
        return {
            "id": self.id,
            "reference": self.reference,
            "supplier_name": self.supplier_name,
            "warehouse_id": self.warehouse_id,
            "expected_date": self.expected_date,
            "status": self.status,
            "created_at": self.created_at,
            "created_by_user_id": self.created_by_user_id,
            "lines": [ln.to_schema for ln in self.lines],
        }


class InboundOrderLine(Base):
    __tablename__ = "inbound_order_lines"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inbound_order_id = Column(Uuid, ForeignKey("inbound_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    expected_qty = Column(Integer, nullable=False)
    received_qty = Column(Integer, nullable=False, default=0)

    order = relationship("InboundOrder", back_populates="lines")
    item = relationship("Item")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "item_id": self.item_id,
            "expected_qty": int(self.expected_qty),
            "received_qty": int(self.received_qty or 0),
        }
