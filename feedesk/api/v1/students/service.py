"""Student directory service: the per-student fee profile consumed by challan generation."""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.api.v1.fee_heads.service import load_fee_head_map
from feedesk.core.enums import StudentStatus
from feedesk.core.exceptions import PersistenceError, ValidationError
from feedesk.core.models import SchoolClass, Student

from .schemas import FeeStructureEntry, StudentCreate, StudentResponse, StudentUpdate

logger = logging.getLogger(__name__)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _fee_structure_to_schema(raw) -> List[FeeStructureEntry]:
    return [
        FeeStructureEntry(fee_head_id=_to_uuid(e["fee_head_id"]), amount=_to_decimal(e["amount"]))
        for e in (raw or [])
    ]


def _to_response(s: Student) -> StudentResponse:
    return StudentResponse(
        id=_to_uuid(s.id),
        school_id=_to_uuid(s.school_id),
        class_id=_to_uuid(s.class_id),
        name=s.name,
        roll_number=s.roll_number,
        father_name=s.father_name,
        status=s.status,
        opening_balance=_to_decimal(s.opening_balance),
        fee_structure=_fee_structure_to_schema(s.fee_structure),
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def _commit(db: AsyncSession, action: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to %s student", action)
        raise PersistenceError(f"Failed to {action} student: {e}")


async def _validate_class(db: AsyncSession, school_id: UUID, class_id: Optional[UUID]) -> None:
    if class_id is None:
        return
    cl = await db.get(SchoolClass, class_id)
    if not cl or cl.school_id != school_id:
        raise ValidationError("Invalid class")


async def _serialize_fee_structure(
    db: AsyncSession,
    school_id: UUID,
    entries: List[FeeStructureEntry],
) -> List[dict]:
    """Validate against the school's current fee heads and store as JSON-safe dicts, in order."""
    fee_heads = await load_fee_head_map(db, school_id)
    seen = set()
    out = []
    for entry in entries:
        key = str(entry.fee_head_id)
        if key not in fee_heads:
            raise ValidationError(f"Invalid fee head {key}")
        if key in seen:
            raise ValidationError("Each fee head may appear only once in a fee structure")
        seen.add(key)
        out.append({"fee_head_id": key, "amount": str(entry.amount)})
    return out


async def create_student(
    db: AsyncSession,
    school_id: UUID,
    payload: StudentCreate,
) -> StudentResponse:
    await _validate_class(db, school_id, payload.class_id)
    fee_structure = await _serialize_fee_structure(db, school_id, payload.fee_structure)
    student = Student(
        school_id=school_id,
        class_id=payload.class_id,
        name=payload.name.strip(),
        roll_number=(payload.roll_number or "").strip() or None,
        father_name=(payload.father_name or "").strip() or None,
        status=StudentStatus.ACTIVE.value,
        opening_balance=payload.opening_balance,
        fee_structure=fee_structure,
    )
    db.add(student)
    await _commit(db, "create")
    await db.refresh(student)
    logger.info("Student %s created for school %s", student.id, school_id)
    return _to_response(student)


async def list_students(
    db: AsyncSession,
    school_id: UUID,
    status_filter: Optional[StudentStatus] = None,
    class_id: Optional[UUID] = None,
) -> List[StudentResponse]:
    stmt = select(Student).where(Student.school_id == school_id)
    if status_filter is not None:
        stmt = stmt.where(Student.status == status_filter.value)
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    stmt = stmt.order_by(Student.name)
    result = await db.execute(stmt)
    return [_to_response(s) for s in result.scalars().all()]


async def get_student(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    if not student or student.school_id != school_id:
        return None
    return _to_response(student)


async def update_student(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    payload: StudentUpdate,
) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    if not student or student.school_id != school_id:
        return None
    if payload.class_id is not None:
        await _validate_class(db, school_id, payload.class_id)
        student.class_id = payload.class_id
    if payload.name is not None:
        student.name = payload.name.strip()
    if payload.roll_number is not None:
        student.roll_number = payload.roll_number.strip() or None
    if payload.father_name is not None:
        student.father_name = payload.father_name.strip() or None
    if payload.status is not None:
        student.status = payload.status.value
    if payload.opening_balance is not None:
        student.opening_balance = payload.opening_balance
    if payload.fee_structure is not None:
        student.fee_structure = await _serialize_fee_structure(db, school_id, payload.fee_structure)
    await _commit(db, "update")
    await db.refresh(student)
    return _to_response(student)
