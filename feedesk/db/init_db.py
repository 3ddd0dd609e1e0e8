"""
Create all billing tables and optionally seed a school.

Usage:
    python -m feedesk.db.init_db
    python -m feedesk.db.init_db --school-name "Green Valley School" --fee-head "Tuition Fee=5000"
"""
import argparse
import asyncio
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

# Import all models so Base.metadata knows every table
import feedesk.core.models  # noqa: F401
from feedesk.core.models import FeeHead, School
from feedesk.db.session import AsyncSessionLocal, Base, engine


def parse_fee_head(value: str) -> Tuple[str, Decimal]:
    """Parse "Name=Amount" into (name, amount)."""
    name, sep, amount = value.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Expected NAME=AMOUNT, got {value!r}")
    try:
        parsed = Decimal(amount.strip())
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"Invalid amount in {value!r}")
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"Amount cannot be negative in {value!r}")
    return name.strip(), parsed


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_school(
    db: AsyncSession,
    name: str,
    fee_heads: List[Tuple[str, Decimal]],
) -> School:
    """Get or create a school by name and make sure the given fee heads exist for it."""
    school = (await db.execute(select(School).where(School.name == name))).scalars().first()
    if school is None:
        school = School(name=name)
        db.add(school)
        await db.flush()

    existing = {
        fh.name
        for fh in (await db.execute(select(FeeHead).where(FeeHead.school_id == school.id))).scalars().all()
    }
    for head_name, amount in fee_heads:
        if head_name not in existing:
            db.add(FeeHead(school_id=school.id, name=head_name, default_amount=amount))
    await db.commit()
    return school


async def main(school_name: Optional[str], fee_heads: List[Tuple[str, Decimal]]) -> None:
    await create_tables(engine)
    print("Tables created.")
    if not school_name:
        return
    async with AsyncSessionLocal() as db:
        try:
            school = await seed_school(db, school_name, fee_heads)
        except Exception as e:
            print(f"Error seeding school: {e}")
            await db.rollback()
            raise
    print(f"School {school.name} ready (id={school.id}).")


def cli() -> None:
    parser = argparse.ArgumentParser(description="Create billing tables and optionally seed a school")
    parser.add_argument("--school-name", type=str, default=None, help="Create this school if missing")
    parser.add_argument(
        "--fee-head",
        type=parse_fee_head,
        action="append",
        default=[],
        help="Fee head to create for the school, as NAME=AMOUNT (repeatable)",
    )
    args = parser.parse_args()
    asyncio.run(main(args.school_name, args.fee_head))


if __name__ == "__main__":
    cli()
