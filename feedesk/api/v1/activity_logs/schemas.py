"""Activity log schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel


class ActivityLogResponse(BaseModel):
    id: UUID
    school_id: UUID
    action: str
    details: Optional[str] = None
    reference_table: Optional[str] = None
    reference_id: Optional[UUID] = None
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    changed_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True
