"""Fee head schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FeeHeadCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    default_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)


class FeeHeadUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    default_amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)


class FeeHeadResponse(BaseModel):
    id: UUID
    school_id: UUID
    name: str
    default_amount: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
