"""Activity log router (read-only)."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.dependencies import get_current_user
from feedesk.auth.rbac import check_permission
from feedesk.auth.schemas import CurrentUser
from feedesk.core.enums import Permission
from feedesk.db.session import get_db

from .schemas import ActivityLogResponse
from . import service

router = APIRouter(prefix="/api/v1/activity-logs", tags=["activity-logs"])


@router.get(
    "",
    response_model=List[ActivityLogResponse],
    dependencies=[Depends(check_permission(Permission.VIEW_FINANCIAL_REPORTS))],
)
async def list_activity_logs(
    action: Optional[str] = Query(None, description="e.g. Challans Generated, Fee Payment Recorded"),
    reference_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ActivityLogResponse]:
    return await service.list_activity_logs(
        db,
        current_user.school_id,
        action=action,
        reference_id=reference_id,
        limit=limit,
    )
