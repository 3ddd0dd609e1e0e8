"""Report schemas."""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from feedesk.core.enums import DefaulterReportType


# --- Defaulters ---
class DefaulterRow(BaseModel):
    student_id: UUID
    student_name: str
    roll_number: Optional[str] = None
    father_name: Optional[str] = None
    amount_due: Decimal
    paid: Decimal
    balance: Decimal


class DefaulterTotals(BaseModel):
    amount_due: Decimal = Decimal("0")
    paid: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class DefaulterClassGroup(BaseModel):
    class_id: Optional[UUID] = None
    class_name: str
    rows: List[DefaulterRow] = Field(default_factory=list)
    subtotals: DefaulterTotals = Field(default_factory=DefaulterTotals)


class DefaulterReport(BaseModel):
    report_type: DefaulterReportType
    month: Optional[str] = None
    year: Optional[int] = None
    classes: List[DefaulterClassGroup]
    grand_total: DefaulterTotals


# --- Fee collection ---
class CollectionRow(BaseModel):
    challan_id: UUID
    challan_number: str
    student_id: UUID
    student_name: str
    roll_number: Optional[str] = None
    father_name: Optional[str] = None
    month: str
    year: int
    amount_due: Decimal
    discount: Decimal
    paid: Decimal
    balance: Decimal
    paid_date: date


class CollectionClassGroup(BaseModel):
    class_id: Optional[UUID] = None
    class_name: str
    rows: List[CollectionRow] = Field(default_factory=list)
    paid_subtotal: Decimal = Decimal("0")


class FeeCollectionReport(BaseModel):
    start_date: date
    end_date: date
    classes: List[CollectionClassGroup]
    grand_total_paid: Decimal
    total_records: int
