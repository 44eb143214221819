import uuid
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Text, Uuid
from .database import Base, utcnow


TASK_TYPES = ("REPLENISHMENT", "CYCLE_COUNT", "PUTAWAY", "PICK")
OPEN_TASK_STATUSES = ("PENDING", "IN_PROGRESS")


class Task(Base):
    """Work item handed to the external work queue; the core only creates and reads these."""
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_type = Column(Text, nullable=False, index=True)
    status = Column(Text, nullable=False, default="PENDING", index=True)  # PENDING|IN_PROGRESS|DONE
    priority = Column(Integer, nullable=False, default=3)
    assignee_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True)
    # `metadata` is reserved on declarative classes
    task_metadata = Column("metadata", JSON, nullable=False, default=dict)
    auto_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "task_type": self.task_type,
            "status": self.status,
            "priority": int(self.priority),
            "assignee_id": self.assignee_id,
            "location_id": self.location_id,
            "metadata": dict(self.task_metadata or {}),
            "auto_generated": bool(self.auto_generated),
            "created_at": self.created_at,
        }


class CycleCountRun(Base):
    __tablename__ = "cycle_count_runs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    warehouse_id = Column(Uuid, ForeignKey("warehouses.id", ondelete="SET NULL"), nullable=True, index=True)
    strategy = Column(Text, nullable=False)
    limit = Column(Integer, nullable=False)
    location_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
