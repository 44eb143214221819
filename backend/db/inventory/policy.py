import uuid

from sqlalchemy import Column, ForeignKey, Integer, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


class ReplenishmentPolicy(Base):
    __tablename__ = "replenishment_policies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    min_qty = Column(Integer, nullable=False)
    max_qty = Column(Integer, nullable=True)

    location = relationship("Location")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "location_id": self.location_id,
            "min_qty": int(self.min_qty),
            "max_qty": int(self.max_qty) if self.max_qty is not None else None,
        }
