"""Challan service: monthly challan generation and payment reconciliation. Financial logic with activity log."""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.api.v1.activity_logs.service import log_activity
from feedesk.api.v1.fee_heads.service import load_fee_head_map
from feedesk.core.billing_period import (
    due_date_for,
    generate_challan_number,
    period_sort_key,
    validate_period,
)
from feedesk.core.enums import ChallanStatus, StudentStatus
from feedesk.core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from feedesk.core.models import FeeChallan, FeeHead, Student

from .schemas import (
    FeeChallanResponse,
    FeeItem,
    GenerateChallansResult,
    PaymentCreate,
    SelectedFeeHead,
)

logger = logging.getLogger(__name__)

NO_ACTIVE_STUDENTS_MESSAGE = "No active students found to generate challans for."
ALL_BILLED_MESSAGE = "All challans for this month already exist."


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _challan_to_response(ch: FeeChallan) -> FeeChallanResponse:
    return FeeChallanResponse(
        id=_to_uuid(ch.id),
        school_id=_to_uuid(ch.school_id),
        student_id=_to_uuid(ch.student_id),
        class_id=_to_uuid(ch.class_id),
        challan_number=ch.challan_number,
        month=ch.month,
        year=ch.year,
        due_date=ch.due_date,
        status=ch.status,
        fee_items=[FeeItem(description=i["description"], amount=_to_decimal(i["amount"])) for i in (ch.fee_items or [])],
        previous_balance=_to_decimal(ch.previous_balance),
        total_amount=_to_decimal(ch.total_amount),
        paid_amount=_to_decimal(ch.paid_amount),
        discount=_to_decimal(ch.discount),
        paid_date=ch.paid_date,
        created_at=ch.created_at,
        updated_at=ch.updated_at,
    )


def _payment_snapshot(ch: FeeChallan) -> dict:
    return {
        "paid_amount": str(_to_decimal(ch.paid_amount)),
        "discount": str(_to_decimal(ch.discount)),
        "status": ch.status,
        "paid_date": ch.paid_date.isoformat() if ch.paid_date else None,
    }


# --- Generation ---
def build_challan(
    student: Student,
    fee_heads: Dict[str, FeeHead],
    selected_fee_heads: Iterable[SelectedFeeHead],
    month: str,
    year: int,
    due_date: Optional[date] = None,
) -> FeeChallan:
    """
    Compute one student's challan for a period. Does not touch the database.

    Items come first from the student's own fee structure, then from the run's
    selected fee heads unless an item with the same description is already present.
    Fee heads missing from `fee_heads` (e.g. deleted) are skipped.
    A positive opening balance is carried as previous_balance, not as an item.
    """
    fee_items: List[dict] = []
    total = Decimal("0")

    for entry in student.fee_structure or []:
        fee_head = fee_heads.get(str(entry.get("fee_head_id")))
        if fee_head:
            amount = _to_decimal(entry.get("amount"))
            fee_items.append({"description": fee_head.name, "amount": str(amount)})
            total += amount

    for selected in selected_fee_heads:
        fee_head = fee_heads.get(str(selected.fee_head_id))
        if fee_head and not any(item["description"] == fee_head.name for item in fee_items):
            amount = _to_decimal(selected.amount)
            fee_items.append({"description": fee_head.name, "amount": str(amount)})
            total += amount

    previous_balance = Decimal("0")
    if _to_decimal(student.opening_balance) > 0:
        previous_balance = _to_decimal(student.opening_balance)
        total += previous_balance

    return FeeChallan(
        id=uuid.uuid4(),
        school_id=student.school_id,
        student_id=student.id,
        class_id=student.class_id,
        challan_number=generate_challan_number(month, year),
        month=month,
        year=year,
        due_date=due_date or due_date_for(month, year),
        status=ChallanStatus.UNPAID.value,
        fee_items=fee_items,
        previous_balance=previous_balance,
        total_amount=total,
        paid_amount=Decimal("0"),
        discount=Decimal("0"),
        paid_date=None,
    )


async def _billed_student_ids(
    db: AsyncSession,
    student_ids: List[UUID],
    month: str,
    year: int,
) -> Set[UUID]:
    if not student_ids:
        return set()
    result = await db.execute(
        select(FeeChallan.student_id).where(
            FeeChallan.student_id.in_(student_ids),
            FeeChallan.month == month,
            FeeChallan.year == year,
        )
    )
    return {_to_uuid(sid) for sid in result.scalars().all()}


PERIOD_CONSTRAINT = "uq_fee_challan_student_period"
# SQLite reports the columns instead of the constraint name
PERIOD_CONSTRAINT_COLUMNS = "fee_challans.student_id, fee_challans.month, fee_challans.year"


def _is_period_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return PERIOD_CONSTRAINT in message or PERIOD_CONSTRAINT_COLUMNS in message


async def _commit_challans(db: AsyncSession, school_id: UUID, month: str, year: int) -> None:
    """Commit the pending batch. Any failure rolls back every challan in it."""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if not _is_period_conflict(e):
            logger.exception("Integrity error persisting challans for %s %s in school %s", month, year, school_id)
            raise PersistenceError(f"Failed to generate challans: {e.orig}")
        logger.warning("Duplicate challan for %s %s in school %s; batch rolled back", month, year, school_id)
        raise ConflictError(
            f"Challans for {month} {year} were generated concurrently for some students. Please run generation again."
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to persist challans for %s %s in school %s", month, year, school_id)
        raise PersistenceError(f"Failed to generate challans: {e}")


async def generate_challans_for_month(
    db: AsyncSession,
    school_id: UUID,
    month: str,
    year: int,
    selected_fee_heads: List[SelectedFeeHead],
    changed_by: Optional[UUID] = None,
) -> GenerateChallansResult:
    """Bill every active student of the school for (month, year), skipping students already billed."""
    validate_period(month, year)

    students = (
        await db.execute(
            select(Student)
            .where(
                Student.school_id == school_id,
                Student.status == StudentStatus.ACTIVE.value,
            )
            .order_by(Student.name)
        )
    ).scalars().all()
    if not students:
        logger.info("No active students in school %s for %s %s", school_id, month, year)
        return GenerateChallansResult(created=0, message=NO_ACTIVE_STUDENTS_MESSAGE)

    already_billed = await _billed_student_ids(db, [s.id for s in students], month, year)
    fee_heads = await load_fee_head_map(db, school_id)

    challans: List[FeeChallan] = []
    for student in students:
        if _to_uuid(student.id) in already_billed:
            continue
        challans.append(build_challan(student, fee_heads, selected_fee_heads, month, year))

    if not challans:
        logger.info("All active students of school %s already billed for %s %s", school_id, month, year)
        return GenerateChallansResult(created=0, message=ALL_BILLED_MESSAGE)

    db.add_all(challans)
    await log_activity(
        db, school_id, "Challans Generated",
        f"{len(challans)} challans generated for {month} {year}.",
        reference_table="fee_challans",
        new_value={
            "month": month,
            "year": year,
            "count": len(challans),
            "selected_fee_heads": [
                {"fee_head_id": str(s.fee_head_id), "amount": str(s.amount)} for s in selected_fee_heads
            ],
        },
        changed_by=changed_by,
    )
    await _commit_challans(db, school_id, month, year)

    logger.info("Generated %d challans for school %s, %s %s", len(challans), school_id, month, year)
    return GenerateChallansResult(
        created=len(challans),
        message=f"{len(challans)} fee challans have been generated.",
        challans=[_challan_to_response(ch) for ch in challans],
    )


async def generate_challan_for_student(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    month: str,
    year: int,
    selected_fee_heads: List[SelectedFeeHead],
    due_date: Optional[date] = None,
    changed_by: Optional[UUID] = None,
) -> FeeChallanResponse:
    """Bill a single student for (month, year). An existing challan for the period is a conflict."""
    validate_period(month, year)

    student = await db.get(Student, student_id)
    if not student or student.school_id != school_id:
        raise NotFoundError("Student not found")
    if student.status != StudentStatus.ACTIVE.value:
        raise ValidationError("Challans can only be generated for active students")

    if await _billed_student_ids(db, [student.id], month, year):
        raise ConflictError(f"A challan for {month} {year} already exists for this student")

    fee_heads = await load_fee_head_map(db, school_id)
    challan = build_challan(student, fee_heads, selected_fee_heads, month, year, due_date=due_date)
    db.add(challan)
    await log_activity(
        db, school_id, "Challan Generated",
        f"Challan {challan.challan_number} generated for {student.name} ({month} {year}).",
        reference_table="fee_challans",
        reference_id=challan.id,
        new_value={"total_amount": str(challan.total_amount), "due_date": challan.due_date.isoformat()},
        changed_by=changed_by,
    )
    await _commit_challans(db, school_id, month, year)
    logger.info("Generated challan %s for student %s", challan.challan_number, student_id)
    return _challan_to_response(challan)


# --- Payment ---
def resolve_payment(
    challan: FeeChallan,
    amount: Decimal,
    discount: Decimal,
) -> Tuple[Decimal, str]:
    """
    Validate a payment against a challan and return (new_paid_amount, new_status).

    amount is added to the paid amount; discount replaces the challan's discount.
    Raises ValidationError when nothing new is contributed or the challan would be overpaid.
    """
    if challan.status == ChallanStatus.CANCELLED.value:
        raise ValidationError("Cannot record a payment against a cancelled challan")
    if amount < 0:
        raise ValidationError("Amount cannot be negative")
    if discount < 0:
        raise ValidationError("Discount cannot be negative")

    paid = _to_decimal(challan.paid_amount)
    total = _to_decimal(challan.total_amount)
    if amount <= 0 and discount <= _to_decimal(challan.discount):
        raise ValidationError("Enter a payment amount or a larger discount")
    if paid + amount + discount > total:
        raise ValidationError("Payment and discount cannot exceed the challan total")

    new_paid = paid + amount
    new_status = ChallanStatus.PAID.value if new_paid + discount >= total else ChallanStatus.PARTIAL.value
    return new_paid, new_status


async def _get_challan(db: AsyncSession, school_id: UUID, challan_id: UUID) -> FeeChallan:
    challan = (
        await db.execute(
            select(FeeChallan).where(
                FeeChallan.id == challan_id,
                FeeChallan.school_id == school_id,
            )
        )
    ).scalar_one_or_none()
    if not challan:
        raise NotFoundError("Challan not found")
    return challan


async def record_fee_payment(
    db: AsyncSession,
    school_id: UUID,
    challan_id: UUID,
    payload: PaymentCreate,
    changed_by: Optional[UUID] = None,
) -> FeeChallanResponse:
    challan = await _get_challan(db, school_id, challan_id)
    amount = _to_decimal(payload.amount)
    discount = _to_decimal(payload.discount)
    try:
        new_paid, new_status = resolve_payment(challan, amount, discount)
    except ValidationError as e:
        logger.warning("Payment rejected for challan %s: %s", challan.challan_number, e.message)
        raise

    old_value = _payment_snapshot(challan)
    challan.paid_amount = new_paid
    challan.discount = discount
    challan.status = new_status
    challan.paid_date = payload.paid_date
    await log_activity(
        db, school_id, "Fee Payment Recorded",
        f"Payment of Rs. {amount} for challan {challan.challan_number}.",
        reference_table="fee_challans",
        reference_id=challan.id,
        old_value=old_value,
        new_value=_payment_snapshot(challan),
        changed_by=changed_by,
    )
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to record payment for challan %s", challan_id)
        raise PersistenceError(f"Failed to record payment: {e}")
    await db.refresh(challan)
    logger.info("Payment of %s recorded for challan %s (%s)", amount, challan.challan_number, new_status)
    return _challan_to_response(challan)


async def cancel_challan(
    db: AsyncSession,
    school_id: UUID,
    challan_id: UUID,
    changed_by: Optional[UUID] = None,
) -> FeeChallanResponse:
    """Cancel an untouched challan. It keeps its (student, month, year) slot."""
    challan = await _get_challan(db, school_id, challan_id)
    if challan.status == ChallanStatus.CANCELLED.value:
        raise ValidationError("Challan is already cancelled")
    if _to_decimal(challan.paid_amount) > 0 or _to_decimal(challan.discount) > 0:
        raise ValidationError("Cannot cancel a challan with payments or discounts recorded")
    old_status = challan.status
    challan.status = ChallanStatus.CANCELLED.value
    await log_activity(
        db, school_id, "Challan Cancelled",
        f"Challan {challan.challan_number} cancelled.",
        reference_table="fee_challans",
        reference_id=challan.id,
        old_value={"status": old_status},
        new_value={"status": challan.status},
        changed_by=changed_by,
    )
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to cancel challan %s", challan_id)
        raise PersistenceError(f"Failed to cancel challan: {e}")
    await db.refresh(challan)
    return _challan_to_response(challan)


# --- Lookup ---
async def list_challans(
    db: AsyncSession,
    school_id: UUID,
    month: Optional[str] = None,
    year: Optional[int] = None,
    status_filter: Optional[ChallanStatus] = None,
    student_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
) -> List[FeeChallanResponse]:
    stmt = select(FeeChallan).where(FeeChallan.school_id == school_id)
    if month is not None:
        stmt = stmt.where(FeeChallan.month == month)
    if year is not None:
        stmt = stmt.where(FeeChallan.year == year)
    if status_filter is not None:
        stmt = stmt.where(FeeChallan.status == status_filter.value)
    if student_id is not None:
        stmt = stmt.where(FeeChallan.student_id == student_id)
    if class_id is not None:
        stmt = stmt.where(FeeChallan.class_id == class_id)
    result = await db.execute(stmt)
    challans = sorted(
        result.scalars().all(),
        key=lambda ch: (period_sort_key(ch.month, ch.year), ch.challan_number),
    )
    return [_challan_to_response(ch) for ch in challans]


async def get_challan(
    db: AsyncSession,
    school_id: UUID,
    challan_id: UUID,
) -> FeeChallanResponse:
    return _challan_to_response(await _get_challan(db, school_id, challan_id))


async def get_challan_by_number(
    db: AsyncSession,
    school_id: UUID,
    challan_number: str,
) -> FeeChallanResponse:
    """Numbers are not guaranteed unique; the most recently created match wins."""
    challan = (
        await db.execute(
            select(FeeChallan)
            .where(
                FeeChallan.school_id == school_id,
                FeeChallan.challan_number == challan_number.strip(),
            )
            .order_by(FeeChallan.created_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    if not challan:
        raise NotFoundError("Challan not found")
    return _challan_to_response(challan)
