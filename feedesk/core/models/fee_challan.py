"""Fee challan: the monthly bill for one student. Line items are a snapshot, never re-derived."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from feedesk.core.enums import ChallanStatus
from feedesk.db.session import Base


class FeeChallan(Base):
    """
    Monthly challan for a student.

    fee_items is an ordered list of {"description": str, "amount": str}.
    total_amount = sum(fee_items.amount) + previous_balance (when positive).
    paid_amount + discount never exceeds total_amount.
    """

    __tablename__ = "fee_challans"
    __table_args__ = (
        # One challan per student per billing period
        UniqueConstraint("student_id", "month", "year", name="uq_fee_challan_student_period"),
        CheckConstraint(
            "status IN ('Unpaid','Partial','Paid','Cancelled')",
            name="chk_fee_challan_status",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)
    challan_number = Column(String(30), nullable=False, index=True)
    month = Column(String(10), nullable=False)
    year = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=ChallanStatus.UNPAID.value)
    fee_items = Column(JSON, nullable=False, default=list)
    previous_balance = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    paid_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", backref="challans")
    school_class = relationship("SchoolClass", foreign_keys=[class_id])
