"""Reports router: defaulters and fee collection."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.dependencies import get_current_user
from feedesk.auth.rbac import check_permission
from feedesk.auth.schemas import CurrentUser
from feedesk.core.enums import DefaulterReportType, Permission
from feedesk.core.exceptions import ServiceError
from feedesk.db.session import get_db

from .schemas import DefaulterReport, FeeCollectionReport
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get(
    "/defaulters",
    response_model=DefaulterReport,
    dependencies=[Depends(check_permission(Permission.VIEW_FINANCIAL_REPORTS))],
)
async def get_defaulter_report(
    report_type: DefaulterReportType = Query(DefaulterReportType.MONTHLY),
    month: Optional[str] = Query(None, description="Required for monthly reports"),
    year: Optional[int] = Query(None, description="Required for monthly reports"),
    class_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> DefaulterReport:
    try:
        return await service.get_defaulter_report(
            db,
            current_user.school_id,
            report_type,
            month=month,
            year=year,
            class_id=class_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/fee-collection",
    response_model=FeeCollectionReport,
    dependencies=[Depends(check_permission(Permission.VIEW_FINANCIAL_REPORTS))],
)
async def get_fee_collection_report(
    start_date: date,
    end_date: date,
    class_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeCollectionReport:
    try:
        return await service.get_fee_collection_report(
            db,
            current_user.school_id,
            start_date,
            end_date,
            class_id=class_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
