from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy import Column, String
from .database import Base


ROLES = ("ADMIN", "OPERATOR", "VIEWER")


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"

    role = Column(String(20), nullable=False, default="OPERATOR")

    @property
    def to_schema(self):
        """Convert User model to schema dictionary format"""
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
        }
