"""
Activity log for billing actions. Call on every fee-related state change, inside the same transaction.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.core.models import ActivityLog

from .schemas import ActivityLogResponse


async def log_activity(
    db: AsyncSession,
    school_id: UUID,
    action: str,
    details: Optional[str] = None,
    *,
    reference_table: Optional[str] = None,
    reference_id: Optional[UUID] = None,
    old_value: Optional[dict] = None,
    new_value: Optional[dict] = None,
    changed_by: Optional[UUID] = None,
) -> None:
    """Append one activity log entry. Caller must commit."""
    entry = ActivityLog(
        school_id=school_id,
        action=action,
        details=details,
        reference_table=reference_table,
        reference_id=reference_id,
        old_value=old_value,
        new_value=new_value,
        changed_by=changed_by,
    )
    db.add(entry)


async def list_activity_logs(
    db: AsyncSession,
    school_id: UUID,
    action: Optional[str] = None,
    reference_id: Optional[UUID] = None,
    limit: int = 100,
) -> List[ActivityLogResponse]:
    stmt = select(ActivityLog).where(ActivityLog.school_id == school_id)
    if action:
        stmt = stmt.where(ActivityLog.action == action)
    if reference_id is not None:
        stmt = stmt.where(ActivityLog.reference_id == reference_id)
    stmt = stmt.order_by(ActivityLog.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return [ActivityLogResponse.model_validate(entry) for entry in result.scalars().all()]
