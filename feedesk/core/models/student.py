"""Student directory entry with the per-student fee profile used at challan generation time."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from feedesk.core.enums import StudentStatus
from feedesk.db.session import Base


class Student(Base):
    """
    Student of a school.

    fee_structure is an ordered list of {"fee_head_id": str, "amount": str}, at most
    one entry per fee head. Entries are not foreign keys: a deleted fee head leaves a
    dangling entry that challan generation skips.
    opening_balance is the carried-forward amount owed before the current period.
    """

    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)
    roll_number = Column(String(50), nullable=True)
    father_name = Column(String(255), nullable=True)
    # Active, Inactive, Left
    status = Column(String(20), nullable=False, default=StudentStatus.ACTIVE.value)
    opening_balance = Column(Numeric(12, 2), nullable=False, default=0)
    fee_structure = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school = relationship("School", back_populates="students")
    school_class = relationship("SchoolClass", foreign_keys=[class_id])
