import uuid

from sqlalchemy import Boolean, Column, String, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


class Item(Base):
    __tablename__ = "items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sku = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    unit = Column(String, nullable=False, default="PCS")
    barcode = Column(String, nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    stock_records = relationship("StockRecord", back_populates="item")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "unit": self.unit,
            "barcode": self.barcode,
            "is_active": self.is_active,
        }
