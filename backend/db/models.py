"""Import every model module so Base.metadata knows all tables."""

from .users import User
from .inventory.item import Item
from .inventory.location import Location, Warehouse
from .inventory.policy import ReplenishmentPolicy
from .inventory.stock import StockRecord
from .inventory.movement import Movement
from .inbound import InboundOrder, InboundOrderLine
from .outbound import OutboundOrder, OutboundOrderLine
from .counts import CountLine, InventoryCount
from .tasks import CycleCountRun, Task
from .rules import PutawayRule
from .audit import AuditLog

__all__ = [
    "AuditLog",
    "CountLine",
    "CycleCountRun",
    "InboundOrder",
    "InboundOrderLine",
    "InventoryCount",
    "Item",
    "Location",
    "Movement",
    "OutboundOrder",
    "OutboundOrderLine",
    "PutawayRule",
    "ReplenishmentPolicy",
    "StockRecord",
    "Task",
    "User",
    "Warehouse",
]
