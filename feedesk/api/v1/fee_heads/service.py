"""Fee head service layer. Deleting or renaming a fee head never touches generated challans."""

import logging
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.api.v1.activity_logs.service import log_activity
from feedesk.core.exceptions import ConflictError, PersistenceError
from feedesk.core.models import FeeHead

from .schemas import FeeHeadCreate, FeeHeadResponse, FeeHeadUpdate

logger = logging.getLogger(__name__)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _to_response(fh: FeeHead) -> FeeHeadResponse:
    return FeeHeadResponse(
        id=_to_uuid(fh.id),
        school_id=_to_uuid(fh.school_id),
        name=fh.name,
        default_amount=_to_decimal(fh.default_amount),
        created_at=fh.created_at,
        updated_at=fh.updated_at,
    )


async def load_fee_head_map(db: AsyncSession, school_id: UUID) -> Dict[str, FeeHead]:
    """All fee heads of a school keyed by str(id), for lookups by fee_head_id."""
    result = await db.execute(select(FeeHead).where(FeeHead.school_id == school_id))
    return {str(fh.id): fh for fh in result.scalars().all()}


async def _get(db: AsyncSession, school_id: UUID, fee_head_id: UUID) -> Optional[FeeHead]:
    result = await db.execute(
        select(FeeHead).where(
            FeeHead.id == fee_head_id,
            FeeHead.school_id == school_id,
        )
    )
    return result.scalar_one_or_none()


async def create_fee_head(
    db: AsyncSession,
    school_id: UUID,
    payload: FeeHeadCreate,
    changed_by: Optional[UUID] = None,
) -> FeeHeadResponse:
    name = payload.name.strip()
    try:
        fh = FeeHead(
            school_id=school_id,
            name=name,
            default_amount=payload.default_amount,
        )
        db.add(fh)
        await db.flush()
        await log_activity(
            db, school_id, "Fee Head Added",
            f"New fee head created: {name}.",
            reference_table="fee_heads",
            reference_id=fh.id,
            new_value={"name": name, "default_amount": str(payload.default_amount)},
            changed_by=changed_by,
        )
        await db.commit()
        await db.refresh(fh)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A fee head with this name already exists for this school")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to save fee head for school %s", school_id)
        raise PersistenceError(f"Failed to save fee head: {e}")
    logger.info("Fee head %s created for school %s", fh.id, school_id)
    return _to_response(fh)


async def list_fee_heads(db: AsyncSession, school_id: UUID) -> List[FeeHeadResponse]:
    stmt = select(FeeHead).where(FeeHead.school_id == school_id).order_by(FeeHead.name)
    result = await db.execute(stmt)
    return [_to_response(fh) for fh in result.scalars().all()]


async def get_fee_head(
    db: AsyncSession,
    school_id: UUID,
    fee_head_id: UUID,
) -> Optional[FeeHeadResponse]:
    fh = await _get(db, school_id, fee_head_id)
    return _to_response(fh) if fh else None


async def update_fee_head(
    db: AsyncSession,
    school_id: UUID,
    fee_head_id: UUID,
    payload: FeeHeadUpdate,
    changed_by: Optional[UUID] = None,
) -> Optional[FeeHeadResponse]:
    fh = await _get(db, school_id, fee_head_id)
    if not fh:
        return None
    old_value = {"name": fh.name, "default_amount": str(_to_decimal(fh.default_amount))}
    if payload.name is not None:
        fh.name = payload.name.strip()
    if payload.default_amount is not None:
        fh.default_amount = payload.default_amount
    try:
        await log_activity(
            db, school_id, "Fee Head Updated",
            f"Fee head updated: {fh.name}.",
            reference_table="fee_heads",
            reference_id=fh.id,
            old_value=old_value,
            new_value={"name": fh.name, "default_amount": str(_to_decimal(fh.default_amount))},
            changed_by=changed_by,
        )
        await db.commit()
        await db.refresh(fh)
        return _to_response(fh)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A fee head with this name already exists for this school")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to save fee head for school %s", school_id)
        raise PersistenceError(f"Failed to save fee head: {e}")


async def delete_fee_head(
    db: AsyncSession,
    school_id: UUID,
    fee_head_id: UUID,
    changed_by: Optional[UUID] = None,
) -> bool:
    fh = await _get(db, school_id, fee_head_id)
    if not fh:
        return False
    await log_activity(
        db, school_id, "Fee Head Deleted",
        f"Fee head deleted: {fh.name}.",
        reference_table="fee_heads",
        reference_id=fh.id,
        old_value={"name": fh.name, "default_amount": str(_to_decimal(fh.default_amount))},
        changed_by=changed_by,
    )
    await db.delete(fh)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to delete fee head %s", fee_head_id)
        raise PersistenceError(f"Failed to delete fee head: {e}")
    logger.info("Fee head %s deleted for school %s", fee_head_id, school_id)
    return True
