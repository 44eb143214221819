"""Input checks shared by the fulfillment services. All raise before any mutation."""

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Type
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core import errors
from db.models import Item


def field(obj: Any, name: str) -> Any:
    """Read `name` from a mapping or an attribute-style object (Pydantic model, dataclass)."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def require_fields(obj: Any, names: Sequence[str], *, index: int, kind: str) -> None:
    for name in names:
        value = field(obj, name)
        if value is None or value == "":
            raise errors.ValidationError(
                f"{', '.join(names)} are required for each {kind}",
                field=name,
                index=index,
            )


def positive_int(value: Any, *, name: str, index: Optional[int] = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise errors.ValidationError(f"{name} must be an integer", field=name, index=index, value=value)
    if isinstance(value, float) and not value.is_integer():
        raise errors.ValidationError(f"{name} must be a whole number", field=name, index=index, value=value)
    if number <= 0:
        raise errors.ValidationError(f"{name} must be > 0", field=name, index=index, value=value)
    return number


def validate_order_request(reference: Optional[str], warehouse_id: Optional[UUID], lines: Optional[List[Any]], qty_field: str) -> None:
    if not (reference or "").strip():
        raise errors.ValidationError("reference is required", field="reference")
    if not warehouse_id:
        raise errors.ValidationError("warehouse_id is required", field="warehouse_id")
    if not lines:
        raise errors.ValidationError("at least one line is required", field="lines")
    for i, line in enumerate(lines):
        require_fields(line, ("item_id", qty_field), index=i, kind="line")
        positive_int(field(line, qty_field), name=qty_field, index=i)


async def ensure_exists(db: AsyncSession, model: Type, obj_id: UUID, key: str):
    obj = await db.get(model, obj_id)
    if obj is None:
        raise errors.NotFound(f"{model.__name__} not found", **{key: obj_id})
    return obj


async def ensure_items(db: AsyncSession, item_ids: Iterable[UUID]) -> dict:
    wanted = set(item_ids)
    res = await db.execute(select(Item).where(Item.id.in_(wanted)))
    found = {it.id: it for it in res.scalars().all()}
    missing = [i for i in wanted if i not in found]
    if missing:
        raise errors.NotFound("Item not found", item_id=missing[0])
    return found
