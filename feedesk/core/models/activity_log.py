"""Activity log: immutable record of fee-related changes, written in the same transaction as the change."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from feedesk.db.session import Base


class ActivityLog(Base):
    """Immutable audit trail for billing actions (challan generation, payments, fee head edits)."""

    __tablename__ = "activity_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    # e.g. "Challans Generated", "Fee Payment Recorded", "Fee Head Deleted"
    action = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    reference_table = Column(String(50), nullable=True)
    reference_id = Column(Uuid(as_uuid=True), nullable=True)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    # User id from the external auth provider's token; not a foreign key
    changed_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School")
