from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class TaskRead(BaseModel):
    id: UUID
    task_type: str
    status: str
    priority: int
    assignee_id: Optional[UUID] = None
    location_id: Optional[UUID] = None
    metadata: Dict[str, Any] = {}
    auto_generated: bool
    created_at: Optional[datetime] = None


class CycleCountScanRequest(BaseModel):
    strategy: str = "ROTATION"  # ROTATION | ANOMALY | anything else walks codes
    limit: int = 10
    warehouse_id: Optional[UUID] = None
    skip_open: bool = True
