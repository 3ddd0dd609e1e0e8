import os
from decimal import Decimal
from typing import AsyncGenerator, Callable, Dict
from uuid import UUID, uuid4

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from feedesk.main import app
from feedesk.core.config import settings
from feedesk.core.models import FeeHead, School, SchoolClass, Student
from feedesk.db.session import Base, get_db


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """One in-memory SQLite database per test. StaticPool keeps every session on the same connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_token(school_id: UUID, role: str = "Admin", user_id: UUID = None) -> str:
    """Token in the shape the external auth provider issues."""
    claims = {
        "sub": str(user_id or uuid4()),
        "school_id": str(school_id),
        "role": role,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def headers_for(school: School) -> Callable[..., Dict[str, str]]:
    def _headers(role: str = "Admin", school_id: UUID = None) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(school_id or school.id, role)}"}

    return _headers


@pytest.fixture()
def admin_headers(headers_for) -> Dict[str, str]:
    return headers_for("Admin")


@pytest.fixture()
async def school(db_session: AsyncSession) -> School:
    s = School(name="Green Valley School", address="Main Road")
    db_session.add(s)
    await db_session.commit()
    return s


@pytest.fixture()
async def other_school(db_session: AsyncSession) -> School:
    s = School(name="Hill Top School")
    db_session.add(s)
    await db_session.commit()
    return s


@pytest.fixture()
async def grade_one(db_session: AsyncSession, school: School) -> SchoolClass:
    c = SchoolClass(school_id=school.id, name="Class 1")
    db_session.add(c)
    await db_session.commit()
    return c


@pytest.fixture()
async def tuition(db_session: AsyncSession, school: School) -> FeeHead:
    fh = FeeHead(school_id=school.id, name="Tuition Fee", default_amount=Decimal("5000"))
    db_session.add(fh)
    await db_session.commit()
    return fh


@pytest.fixture()
async def exam_fee(db_session: AsyncSession, school: School) -> FeeHead:
    fh = FeeHead(school_id=school.id, name="Exam Fee", default_amount=Decimal("500"))
    db_session.add(fh)
    await db_session.commit()
    return fh


@pytest.fixture()
def add_student(db_session: AsyncSession, school: School):
    """Factory for students; fee_structure takes (FeeHead, amount) pairs."""

    async def _add(
        name: str,
        fee_structure=(),
        opening_balance: str = "0",
        status: str = "Active",
        class_id: UUID = None,
        school_id: UUID = None,
    ) -> Student:
        student = Student(
            school_id=school_id or school.id,
            class_id=class_id,
            name=name,
            status=status,
            opening_balance=Decimal(opening_balance),
            fee_structure=[
                {"fee_head_id": str(fh.id), "amount": str(amount)} for fh, amount in fee_structure
            ],
        )
        db_session.add(student)
        await db_session.commit()
        return student

    return _add
