import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class StockRecord(Base):
    __tablename__ = "stock_records"
    __table_args__ = (
        # One balance per ledger key; NULL batch/expiry compare equal on PostgreSQL 15+.
        UniqueConstraint(
            "item_id",
            "location_id",
            "batch_number",
            "expiration_date",
            name="ux_stock_records_key",
            postgresql_nulls_not_distinct=True,
        ),
        CheckConstraint("quantity >= 0", name="ck_stock_records_quantity_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    item_id = Column(Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    batch_number = Column(String, nullable=True)
    expiration_date = Column(Date, nullable=True)

    quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    item = relationship("Item", back_populates="stock_records")
    location = relationship("Location")
