"""Student directory schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from feedesk.core.enums import StudentStatus


class FeeStructureEntry(BaseModel):
    """Per-student amount for one fee head."""

    fee_head_id: UUID
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    class_id: Optional[UUID] = None
    roll_number: Optional[str] = Field(None, max_length=50)
    father_name: Optional[str] = Field(None, max_length=255)
    opening_balance: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    fee_structure: List[FeeStructureEntry] = Field(default_factory=list)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    class_id: Optional[UUID] = None
    roll_number: Optional[str] = Field(None, max_length=50)
    father_name: Optional[str] = Field(None, max_length=255)
    status: Optional[StudentStatus] = None
    opening_balance: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    fee_structure: Optional[List[FeeStructureEntry]] = None


class StudentResponse(BaseModel):
    id: UUID
    school_id: UUID
    class_id: Optional[UUID] = None
    name: str
    roll_number: Optional[str] = None
    father_name: Optional[str] = None
    status: StudentStatus
    opening_balance: Decimal
    fee_structure: List[FeeStructureEntry]
    created_at: datetime
    updated_at: datetime
