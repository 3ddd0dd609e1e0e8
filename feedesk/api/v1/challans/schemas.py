"""Fee challan schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from feedesk.core.enums import ChallanStatus


class FeeItem(BaseModel):
    """One line of a challan. A copy of the fee head's name and amount at generation time."""

    description: str
    amount: Decimal


class SelectedFeeHead(BaseModel):
    """Fee head chosen for one billing run, with the amount to charge this time."""

    fee_head_id: UUID
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class GenerateChallansRequest(BaseModel):
    month: str = Field(..., description="Canonical month name, e.g. March (case-sensitive)")
    year: int
    selected_fee_heads: List[SelectedFeeHead] = Field(default_factory=list)


class GenerateStudentChallanRequest(GenerateChallansRequest):
    due_date: Optional[date] = Field(None, description="Defaults to the 10th of the billing month")


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2, description="Amount paid now; added to the running paid amount")
    discount: Decimal = Field(Decimal("0"), max_digits=12, decimal_places=2, description="New total discount for the challan; replaces the previous value")
    paid_date: date


class FeeChallanResponse(BaseModel):
    id: UUID
    school_id: UUID
    student_id: UUID
    class_id: Optional[UUID] = None
    challan_number: str
    month: str
    year: int
    due_date: date
    status: ChallanStatus
    fee_items: List[FeeItem]
    previous_balance: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    discount: Decimal
    paid_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class GenerateChallansResult(BaseModel):
    """Outcome of a billing run. created == 0 is a normal outcome, explained by message."""

    created: int
    message: str
    challans: List[FeeChallanResponse] = Field(default_factory=list)
