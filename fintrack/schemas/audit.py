from pydantic import BaseModel
from datetime import datetime
from typing import Any


class AuditOut(BaseModel):
    id: int
    created_at: datetime
    action: str
    entity_type: str
    entity_id: int | None = None
    details: dict[str, Any] | None = None

    class Config:
        from_attributes = True
