from decimal import Decimal
from uuid import uuid4

from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError


async def test_create_and_get_student(client: AsyncClient, admin_headers, grade_one, tuition, exam_fee) -> None:
    response = await client.post(
        "/api/v1/students",
        json={
            "name": "Ayesha Khan",
            "class_id": str(grade_one.id),
            "roll_number": "12",
            "father_name": "Imran Khan",
            "opening_balance": "1000",
            "fee_structure": [
                {"fee_head_id": str(tuition.id), "amount": "4500"},
                {"fee_head_id": str(exam_fee.id), "amount": "500"},
            ],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    student = response.json()
    assert student["status"] == "Active"
    assert Decimal(student["opening_balance"]) == Decimal("1000")
    assert [e["fee_head_id"] for e in student["fee_structure"]] == [str(tuition.id), str(exam_fee.id)]

    fetched = await client.get(f"/api/v1/students/{student['id']}", headers=admin_headers)
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Ayesha Khan"


async def test_unknown_fee_head_is_rejected(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/students",
        json={"name": "Bilal", "fee_structure": [{"fee_head_id": str(uuid4()), "amount": "100"}]},
        headers=admin_headers,
    )
    assert response.status_code == 400


async def test_repeated_fee_head_is_rejected(client: AsyncClient, admin_headers, tuition) -> None:
    response = await client.post(
        "/api/v1/students",
        json={
            "name": "Bilal",
            "fee_structure": [
                {"fee_head_id": str(tuition.id), "amount": "100"},
                {"fee_head_id": str(tuition.id), "amount": "200"},
            ],
        },
        headers=admin_headers,
    )
    assert response.status_code == 400


async def test_class_of_other_school_is_rejected(client: AsyncClient, headers_for, other_school, grade_one) -> None:
    response = await client.post(
        "/api/v1/students",
        json={"name": "Bilal", "class_id": str(grade_one.id)},
        headers=headers_for("Admin", school_id=other_school.id),
    )
    assert response.status_code == 400


async def test_list_filters_by_status(client: AsyncClient, admin_headers, add_student) -> None:
    await add_student("Asha")
    await add_student("Zara", status="Left")

    active = await client.get("/api/v1/students", params={"status": "Active"}, headers=admin_headers)
    everyone = await client.get("/api/v1/students", headers=admin_headers)

    assert [s["name"] for s in active.json()] == ["Asha"]
    assert [s["name"] for s in everyone.json()] == ["Asha", "Zara"]


async def test_update_student_status(client: AsyncClient, admin_headers, add_student) -> None:
    student = await add_student("Asha")

    response = await client.patch(
        f"/api/v1/students/{student.id}",
        json={"status": "Left"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Left"


async def test_student_of_other_school_is_404(client: AsyncClient, headers_for, other_school, add_student) -> None:
    student = await add_student("Asha")

    response = await client.get(
        f"/api/v1/students/{student.id}",
        headers=headers_for("Admin", school_id=other_school.id),
    )
    assert response.status_code == 404


async def test_teacher_may_list_but_not_create(client: AsyncClient, headers_for) -> None:
    teacher = headers_for("Teacher")
    assert (await client.get("/api/v1/students", headers=teacher)).status_code == 200
    assert (await client.post("/api/v1/students", json={"name": "X"}, headers=teacher)).status_code == 403


async def test_store_failure_is_503(client: AsyncClient, admin_headers, db_session, monkeypatch) -> None:
    async def failing_commit() -> None:
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db_session, "commit", failing_commit)
    response = await client.post("/api/v1/students", json={"name": "Asha"}, headers=admin_headers)
    monkeypatch.undo()

    assert response.status_code == 503
    assert (await client.get("/api/v1/students", headers=admin_headers)).json() == []


async def test_fee_structure_amounts_are_limited_to_paisa_precision(
    client: AsyncClient, admin_headers, tuition
) -> None:
    response = await client.post(
        "/api/v1/students",
        json={"name": "Asha", "fee_structure": [{"fee_head_id": str(tuition.id), "amount": "4500.005"}]},
        headers=admin_headers,
    )
    assert response.status_code == 422
