import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


MOVEMENT_TYPES = ("RECEIPT", "PICK", "MOVE", "ADJUSTMENT")


class Movement(Base):
    __tablename__ = "movements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    item_id = Column(Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Stock leaves from_location and arrives at to_location; either may be NULL.
    from_location_id = Column(Uuid, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=True, index=True)
    to_location_id = Column(Uuid, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=True, index=True)
    batch_number = Column(String, nullable=True)
    expiration_date = Column(Date, nullable=True)

    quantity = Column(Integer, nullable=False)
    movement_type = Column(Text, nullable=False, index=True)  # RECEIPT | PICK | MOVE | ADJUSTMENT
    source_type = Column(Text, nullable=True)
    source_id = Column(Uuid, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    item = relationship("Item")
    from_location = relationship("Location", foreign_keys=[from_location_id])
    to_location = relationship("Location", foreign_keys=[to_location_id])

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "item_id": self.item_id,
            "from_location_id": self.from_location_id,
            "to_location_id": self.to_location_id,
            "batch_number": self.batch_number,
            "expiration_date": self.expiration_date,
            "quantity": int(self.quantity),
            "movement_type": self.movement_type,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "created_at": self.created_at,
            "created_by_user_id": self.created_by_user_id,
        }
