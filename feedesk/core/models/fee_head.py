"""Fee head master (Tuition Fee, Exam Fee, Transport). School-scoped."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from feedesk.db.session import Base


class FeeHead(Base):
    """Named billable component with a default amount. Hard delete; challans keep their own copy of name and amount."""

    __tablename__ = "fee_heads"
    __table_args__ = (
        UniqueConstraint("school_id", "name", name="uq_fee_head_school_name"),
        CheckConstraint("default_amount >= 0", name="chk_fee_head_default_amount"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    default_amount = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school = relationship("School", backref="fee_heads")
