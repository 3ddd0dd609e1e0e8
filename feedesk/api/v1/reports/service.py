"""Fee reports: defaulters (monthly or cumulative) and fee collection over a date range."""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.core.billing_period import validate_period
from feedesk.core.enums import ChallanStatus, DefaulterReportType, StudentStatus
from feedesk.core.exceptions import ValidationError
from feedesk.core.models import FeeChallan, SchoolClass, Student

from .schemas import (
    CollectionClassGroup,
    CollectionRow,
    DefaulterClassGroup,
    DefaulterReport,
    DefaulterRow,
    DefaulterTotals,
    FeeCollectionReport,
)

UNASSIGNED_CLASS_NAME = "Unassigned"


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


async def _class_names(db: AsyncSession, school_id: UUID) -> Dict[UUID, str]:
    result = await db.execute(select(SchoolClass).where(SchoolClass.school_id == school_id))
    return {c.id: c.name for c in result.scalars().all()}


def _group_key(class_id: Optional[UUID], class_names: Dict[UUID, str]) -> Tuple[int, str]:
    # Named classes first, alphabetically; unassigned last
    name = class_names.get(class_id) if class_id else None
    return (0, name) if name else (1, UNASSIGNED_CLASS_NAME)


# --- Defaulters ---
def _monthly_row(student: Student, challan: FeeChallan) -> Optional[DefaulterRow]:
    """Current-month dues only: carried-forward balance is excluded."""
    if challan.status == ChallanStatus.PAID.value:
        return None
    current_dues = _to_decimal(challan.total_amount) - _to_decimal(challan.previous_balance)
    net_payable = current_dues - _to_decimal(challan.discount)
    paid = _to_decimal(challan.paid_amount)
    return DefaulterRow(
        student_id=student.id,
        student_name=student.name,
        roll_number=student.roll_number,
        father_name=student.father_name,
        amount_due=net_payable,
        paid=paid,
        balance=net_payable - paid,
    )


def _cumulative_row(student: Student, challans: List[FeeChallan]) -> Optional[DefaulterRow]:
    """
    Ledger balance over all non-cancelled challans.

    Each challan's previous_balance is a copy of the opening balance, so it is removed
    per challan and the opening balance is counted once.
    """
    charged = sum(
        (_to_decimal(c.total_amount) - _to_decimal(c.previous_balance) for c in challans),
        Decimal("0"),
    ) + _to_decimal(student.opening_balance)
    paid = sum((_to_decimal(c.paid_amount) for c in challans), Decimal("0"))
    discount = sum((_to_decimal(c.discount) for c in challans), Decimal("0"))
    balance = charged - paid - discount
    if balance <= 0:
        return None
    return DefaulterRow(
        student_id=student.id,
        student_name=student.name,
        roll_number=student.roll_number,
        father_name=student.father_name,
        amount_due=charged - discount,
        paid=paid,
        balance=balance,
    )


async def get_defaulter_report(
    db: AsyncSession,
    school_id: UUID,
    report_type: DefaulterReportType,
    month: Optional[str] = None,
    year: Optional[int] = None,
    class_id: Optional[UUID] = None,
) -> DefaulterReport:
    if report_type == DefaulterReportType.MONTHLY:
        if month is None or year is None:
            raise ValidationError("month and year are required for a monthly defaulter report")
        validate_period(month, year)

    stmt = select(Student).where(
        Student.school_id == school_id,
        Student.status == StudentStatus.ACTIVE.value,
    )
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    students = (await db.execute(stmt)).scalars().all()

    challan_stmt = select(FeeChallan).where(
        FeeChallan.school_id == school_id,
        FeeChallan.status != ChallanStatus.CANCELLED.value,
    )
    if report_type == DefaulterReportType.MONTHLY:
        challan_stmt = challan_stmt.where(FeeChallan.month == month, FeeChallan.year == year)
    challans_by_student: Dict[UUID, List[FeeChallan]] = {}
    for ch in (await db.execute(challan_stmt)).scalars().all():
        challans_by_student.setdefault(ch.student_id, []).append(ch)

    class_names = await _class_names(db, school_id)
    groups: Dict[Optional[UUID], DefaulterClassGroup] = {}
    for student in students:
        student_challans = challans_by_student.get(student.id, [])
        if report_type == DefaulterReportType.MONTHLY:
            row = _monthly_row(student, student_challans[0]) if student_challans else None
        else:
            row = _cumulative_row(student, student_challans)
        if row is None:
            continue
        group = groups.get(student.class_id)
        if group is None:
            group = DefaulterClassGroup(
                class_id=student.class_id,
                class_name=class_names.get(student.class_id, UNASSIGNED_CLASS_NAME),
            )
            groups[student.class_id] = group
        group.rows.append(row)
        group.subtotals.amount_due += row.amount_due
        group.subtotals.paid += row.paid
        group.subtotals.balance += row.balance

    ordered = sorted(groups.values(), key=lambda g: _group_key(g.class_id, class_names))
    grand_total = DefaulterTotals()
    for group in ordered:
        group.rows.sort(key=lambda r: r.balance, reverse=True)
        grand_total.amount_due += group.subtotals.amount_due
        grand_total.paid += group.subtotals.paid
        grand_total.balance += group.subtotals.balance

    return DefaulterReport(
        report_type=report_type,
        month=month if report_type == DefaulterReportType.MONTHLY else None,
        year=year if report_type == DefaulterReportType.MONTHLY else None,
        classes=ordered,
        grand_total=grand_total,
    )


# --- Fee collection ---
async def get_fee_collection_report(
    db: AsyncSession,
    school_id: UUID,
    start_date: date,
    end_date: date,
    class_id: Optional[UUID] = None,
) -> FeeCollectionReport:
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")

    stmt = (
        select(FeeChallan, Student)
        .join(Student, FeeChallan.student_id == Student.id)
        .where(
            FeeChallan.school_id == school_id,
            FeeChallan.paid_date.is_not(None),
            FeeChallan.paid_date >= start_date,
            FeeChallan.paid_date <= end_date,
        )
        .order_by(FeeChallan.paid_date, Student.name)
    )
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    rows = (await db.execute(stmt)).all()

    class_names = await _class_names(db, school_id)
    groups: Dict[Optional[UUID], CollectionClassGroup] = {}
    for challan, student in rows:
        group = groups.get(student.class_id)
        if group is None:
            group = CollectionClassGroup(
                class_id=student.class_id,
                class_name=class_names.get(student.class_id, UNASSIGNED_CLASS_NAME),
            )
            groups[student.class_id] = group
        total = _to_decimal(challan.total_amount)
        discount = _to_decimal(challan.discount)
        paid = _to_decimal(challan.paid_amount)
        group.rows.append(
            CollectionRow(
                challan_id=challan.id,
                challan_number=challan.challan_number,
                student_id=student.id,
                student_name=student.name,
                roll_number=student.roll_number,
                father_name=student.father_name,
                month=challan.month,
                year=challan.year,
                amount_due=total,
                discount=discount,
                paid=paid,
                balance=total - discount - paid,
                paid_date=challan.paid_date,
            )
        )
        group.paid_subtotal += paid

    ordered = sorted(groups.values(), key=lambda g: _group_key(g.class_id, class_names))
    return FeeCollectionReport(
        start_date=start_date,
        end_date=end_date,
        classes=ordered,
        grand_total_paid=sum((g.paid_subtotal for g in ordered), Decimal("0")),
        total_records=sum(len(g.rows) for g in ordered),
    )
