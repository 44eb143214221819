import uuid
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Text, Uuid
from .database import Base, utcnow


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(Text, nullable=False, index=True)  # CREATE|RECEIVE|PICK|COUNT|CLOSE|SCAN|MOVE|...
    entity = Column(Text, nullable=False, index=True)
    entity_id = Column(Uuid, nullable=True, index=True)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
