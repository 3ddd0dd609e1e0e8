import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from feedesk.db.session import Base


class School(Base):
    """
    School (tenant) in the multi-tenant platform.

    Every fee head, class, student and challan belongs to exactly one school;
    the school id in the caller's token scopes all reads and writes.
    """

    __tablename__ = "schools"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    classes = relationship("SchoolClass", back_populates="school", cascade="all, delete-orphan")
    students = relationship("Student", back_populates="school", cascade="all, delete-orphan")
