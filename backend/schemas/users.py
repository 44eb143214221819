# fastapi-users schemas extended with the warehouse role

from typing import Literal
from uuid import UUID

from fastapi_users import schemas


Role = Literal["ADMIN", "OPERATOR", "VIEWER"]


class UserRead(schemas.BaseUser[UUID]):
    role: str


class UserCreate(schemas.BaseUserCreate):
    role: Role = "OPERATOR"


# No role here: PATCH /users/me is self-service, roles are set by scripts/create_user.py
class UserUpdate(schemas.BaseUserUpdate):
    pass
