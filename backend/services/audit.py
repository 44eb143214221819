"""Audit sink: one structured row per mutating call, written inside the caller's transaction."""

from typing import Any, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import AsyncSession

from db.audit import AuditLog


def log_audit(
    db: AsyncSession,
    *,
    user_id: Optional[UUID],
    action: str,
    entity: str,
    entity_id: Optional[UUID] = None,
    details: Any = None,
) -> AuditLog:
    row = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=to_jsonable_python(details if details is not None else {}),
    )
    db.add(row)
    return row
