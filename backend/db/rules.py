import uuid
from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text, Uuid
from .database import Base


class PutawayRule(Base):
    """Priority-ordered suggestion rule for putaway (inbound) or picking (outbound)."""
    __tablename__ = "putaway_rules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    rule_type = Column(Text, nullable=False, default="PUTAWAY", index=True)  # PUTAWAY|PICKING
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # exact-match attributes, e.g. {"warehouse_id": "...", "unit": "PAL"}
    criteria = Column(JSON, nullable=False, default=dict)

    strategy = Column(Text, nullable=False)
    target_location_id = Column(Uuid, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    target_zone = Column(Text, nullable=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "rule_type": self.rule_type,
            "priority": int(self.priority),
            "is_active": bool(self.is_active),
            "criteria": dict(self.criteria or {}),
            "strategy": self.strategy,
            "target_location_id": self.target_location_id,
            "target_zone": self.target_zone,
        }
