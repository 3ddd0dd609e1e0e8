from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.api.v1.challans import service
from feedesk.api.v1.challans.schemas import SelectedFeeHead
from feedesk.core.exceptions import ConflictError, PersistenceError, ValidationError
from feedesk.core.models import ActivityLog, FeeChallan


async def _count_challans(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(FeeChallan))).scalar_one()


def _item_sum(challan) -> Decimal:
    return sum((item.amount for item in challan.fee_items), Decimal("0"))


async def test_generates_itemised_challan(db_session, school, tuition, exam_fee, add_student) -> None:
    student = await add_student("Student X", fee_structure=[(tuition, "5000")], opening_balance="1000")

    result = await service.generate_challans_for_month(
        db_session,
        school.id,
        "March",
        2024,
        [SelectedFeeHead(fee_head_id=exam_fee.id, amount=Decimal("500"))],
    )

    assert result.created == 1
    challan = result.challans[0]
    assert challan.student_id == student.id
    assert [(i.description, i.amount) for i in challan.fee_items] == [
        ("Tuition Fee", Decimal("5000")),
        ("Exam Fee", Decimal("500")),
    ]
    assert challan.previous_balance == Decimal("1000")
    assert challan.total_amount == Decimal("6500")
    assert challan.status == "Unpaid"
    assert challan.paid_amount == Decimal("0")
    assert challan.discount == Decimal("0")
    assert challan.paid_date is None
    assert challan.due_date == date(2024, 3, 10)
    assert challan.challan_number.startswith("CHN-202403-")


async def test_second_run_for_same_period_creates_nothing(db_session, school, tuition, add_student) -> None:
    await add_student("Asha", fee_structure=[(tuition, "5000")])
    await add_student("Bilal", fee_structure=[(tuition, "4500")])

    first = await service.generate_challans_for_month(db_session, school.id, "April", 2024, [])
    second = await service.generate_challans_for_month(db_session, school.id, "April", 2024, [])

    assert first.created == 2
    assert second.created == 0
    assert second.message == service.ALL_BILLED_MESSAGE
    assert second.challans == []
    assert await _count_challans(db_session) == 2


async def test_new_student_is_billed_on_rerun(db_session, school, tuition, add_student) -> None:
    await add_student("Asha", fee_structure=[(tuition, "5000")])
    await service.generate_challans_for_month(db_session, school.id, "May", 2024, [])

    late = await add_student("Late Joiner", fee_structure=[(tuition, "5000")])
    result = await service.generate_challans_for_month(db_session, school.id, "May", 2024, [])

    assert result.created == 1
    assert result.challans[0].student_id == late.id


async def test_no_active_students_is_not_an_error(db_session, school, add_student) -> None:
    await add_student("Former Pupil", status="Left")
    await add_student("On Break", status="Inactive")

    result = await service.generate_challans_for_month(db_session, school.id, "March", 2024, [])

    assert result.created == 0
    assert result.message == service.NO_ACTIVE_STUDENTS_MESSAGE
    assert await _count_challans(db_session) == 0


async def test_zero_total_challan_is_still_created(db_session, school, add_student) -> None:
    """Monthly billing always leaves a record, even a Rs. 0 challan."""
    await add_student("No Fees")

    result = await service.generate_challans_for_month(db_session, school.id, "June", 2024, [])

    assert result.created == 1
    challan = result.challans[0]
    assert challan.fee_items == []
    assert challan.previous_balance == Decimal("0")
    assert challan.total_amount == Decimal("0")
    assert challan.status == "Unpaid"


async def test_opening_balance_alone_produces_challan(db_session, school, add_student) -> None:
    await add_student("Arrears Only", opening_balance="750")

    result = await service.generate_challans_for_month(db_session, school.id, "June", 2024, [])

    challan = result.challans[0]
    assert challan.fee_items == []
    assert challan.previous_balance == Decimal("750")
    assert challan.total_amount == Decimal("750")


async def test_selected_fee_head_does_not_duplicate_student_item(db_session, school, tuition, add_student) -> None:
    await add_student("Scholarship", fee_structure=[(tuition, "2500")])

    result = await service.generate_challans_for_month(
        db_session,
        school.id,
        "July",
        2024,
        [SelectedFeeHead(fee_head_id=tuition.id, amount=Decimal("5000"))],
    )

    challan = result.challans[0]
    assert [(i.description, i.amount) for i in challan.fee_items] == [("Tuition Fee", Decimal("2500"))]
    assert challan.total_amount == Decimal("2500")


async def test_unknown_fee_heads_are_skipped(db_session, school, tuition, add_student) -> None:
    student = await add_student("Dangling", fee_structure=[(tuition, "5000")])
    student.fee_structure = student.fee_structure + [{"fee_head_id": str(uuid4()), "amount": "900"}]
    await db_session.commit()

    result = await service.generate_challans_for_month(
        db_session,
        school.id,
        "August",
        2024,
        [SelectedFeeHead(fee_head_id=uuid4(), amount=Decimal("100"))],
    )

    challan = result.challans[0]
    assert [i.description for i in challan.fee_items] == ["Tuition Fee"]
    assert challan.total_amount == Decimal("5000")


async def test_total_is_items_plus_previous_balance(db_session, school, tuition, exam_fee, add_student) -> None:
    await add_student("A", fee_structure=[(tuition, "5000")], opening_balance="1200")
    await add_student("B", fee_structure=[(tuition, "3000"), (exam_fee, "250")])
    await add_student("C", opening_balance="300")

    result = await service.generate_challans_for_month(
        db_session,
        school.id,
        "September",
        2024,
        [SelectedFeeHead(fee_head_id=exam_fee.id, amount=Decimal("400"))],
    )

    assert result.created == 3
    for challan in result.challans:
        assert challan.total_amount == _item_sum(challan) + challan.previous_balance


async def test_only_bills_own_school(db_session, school, other_school, tuition, add_student) -> None:
    await add_student("Ours", fee_structure=[(tuition, "5000")])
    await add_student("Theirs", school_id=other_school.id)

    result = await service.generate_challans_for_month(db_session, school.id, "October", 2024, [])

    assert result.created == 1
    assert result.challans[0].school_id == school.id


async def test_invalid_month_is_rejected(db_session, school, add_student) -> None:
    await add_student("Asha")

    with pytest.raises(ValidationError):
        await service.generate_challans_for_month(db_session, school.id, "march", 2024, [])
    assert await _count_challans(db_session) == 0


async def test_generation_writes_activity_log(db_session, school, add_student) -> None:
    await add_student("Asha")
    await add_student("Bilal")

    await service.generate_challans_for_month(db_session, school.id, "November", 2024, [])

    logs = (
        await db_session.execute(select(ActivityLog).where(ActivityLog.action == "Challans Generated"))
    ).scalars().all()
    assert len(logs) == 1
    assert logs[0].details == "2 challans generated for November 2024."
    assert logs[0].new_value["count"] == 2


async def test_persistence_failure_aborts_whole_batch(db_session, school, add_student, monkeypatch) -> None:
    await add_student("Asha")
    await add_student("Bilal")

    async def failing_commit() -> None:
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(PersistenceError):
        await service.generate_challans_for_month(db_session, school.id, "December", 2024, [])

    monkeypatch.undo()
    assert await _count_challans(db_session) == 0


async def test_concurrent_duplicate_rolls_back_batch(db_session, school, add_student, monkeypatch) -> None:
    """A run that raced past the existence check hits the unique constraint and commits nothing."""
    await add_student("Asha")
    await service.generate_challans_for_month(db_session, school.id, "January", 2025, [])
    await add_student("Bilal")

    async def nothing_billed(*args, **kwargs):
        return set()

    monkeypatch.setattr(service, "_billed_student_ids", nothing_billed)

    with pytest.raises(ConflictError):
        await service.generate_challans_for_month(db_session, school.id, "January", 2025, [])

    assert await _count_challans(db_session) == 1


async def test_single_student_generation(db_session, school, tuition, exam_fee, add_student) -> None:
    student = await add_student("Solo", fee_structure=[(tuition, "5000")])

    challan = await service.generate_challan_for_student(
        db_session,
        school.id,
        student.id,
        "February",
        2025,
        [SelectedFeeHead(fee_head_id=exam_fee.id, amount=Decimal("300"))],
        due_date=date(2025, 2, 20),
    )

    assert challan.total_amount == Decimal("5300")
    assert challan.due_date == date(2025, 2, 20)

    with pytest.raises(ConflictError):
        await service.generate_challan_for_student(db_session, school.id, student.id, "February", 2025, [])


async def test_single_student_generation_requires_active_student(db_session, school, add_student) -> None:
    student = await add_student("Gone", status="Left")

    with pytest.raises(ValidationError):
        await service.generate_challan_for_student(db_session, school.id, student.id, "March", 2025, [])


@pytest.mark.parametrize("amount", ["100.005", "100000000000", "-1"])
def test_selected_fee_head_amount_must_fit_a_money_column(amount) -> None:
    with pytest.raises(SchemaValidationError):
        SelectedFeeHead(fee_head_id=uuid4(), amount=Decimal(amount))


async def test_other_integrity_errors_are_not_reported_as_conflicts(
    db_session, school, add_student, monkeypatch
) -> None:
    await add_student("Asha")
    build = service.build_challan

    def build_with_bad_status(*args, **kwargs):
        challan = build(*args, **kwargs)
        challan.status = "Bogus"
        return challan

    monkeypatch.setattr(service, "build_challan", build_with_bad_status)

    with pytest.raises(PersistenceError):
        await service.generate_challans_for_month(db_session, school.id, "February", 2025, [])

    assert await _count_challans(db_session) == 0
