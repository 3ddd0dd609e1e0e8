"""Challans router: monthly generation, single-student generation, lookup, payment, cancel."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.dependencies import get_current_user
from feedesk.auth.rbac import check_permission
from feedesk.auth.schemas import CurrentUser
from feedesk.core.enums import ChallanStatus, Permission
from feedesk.core.exceptions import ServiceError
from feedesk.db.session import get_db

from .schemas import (
    FeeChallanResponse,
    GenerateChallansRequest,
    GenerateChallansResult,
    GenerateStudentChallanRequest,
    PaymentCreate,
)
from . import service

router = APIRouter(prefix="/api/v1/challans", tags=["challans"])


# --- Generation ---
@router.post(
    "/generate",
    response_model=GenerateChallansResult,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def generate_challans_for_month(
    payload: GenerateChallansRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GenerateChallansResult:
    try:
        return await service.generate_challans_for_month(
            db,
            current_user.school_id,
            payload.month,
            payload.year,
            payload.selected_fee_heads,
            changed_by=current_user.id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/student/{student_id}",
    response_model=FeeChallanResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def generate_challan_for_student(
    student_id: UUID,
    payload: GenerateStudentChallanRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeChallanResponse:
    try:
        return await service.generate_challan_for_student(
            db,
            current_user.school_id,
            student_id,
            payload.month,
            payload.year,
            payload.selected_fee_heads,
            due_date=payload.due_date,
            changed_by=current_user.id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Lookup ---
@router.get(
    "",
    response_model=List[FeeChallanResponse],
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def list_challans(
    month: Optional[str] = Query(None),
    year: Optional[int] = Query(None),
    challan_status: Optional[ChallanStatus] = Query(None, alias="status"),
    student_id: Optional[UUID] = Query(None),
    class_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[FeeChallanResponse]:
    return await service.list_challans(
        db,
        current_user.school_id,
        month=month,
        year=year,
        status_filter=challan_status,
        student_id=student_id,
        class_id=class_id,
    )


@router.get(
    "/by-number/{challan_number}",
    response_model=FeeChallanResponse,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def get_challan_by_number(
    challan_number: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeChallanResponse:
    try:
        return await service.get_challan_by_number(db, current_user.school_id, challan_number)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{challan_id}",
    response_model=FeeChallanResponse,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def get_challan(
    challan_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeChallanResponse:
    try:
        return await service.get_challan(db, current_user.school_id, challan_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Payment ---
@router.post(
    "/{challan_id}/payment",
    response_model=FeeChallanResponse,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def record_fee_payment(
    challan_id: UUID,
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeChallanResponse:
    try:
        return await service.record_fee_payment(
            db,
            current_user.school_id,
            challan_id,
            payload,
            changed_by=current_user.id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{challan_id}/cancel",
    response_model=FeeChallanResponse,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def cancel_challan(
    challan_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeChallanResponse:
    try:
        return await service.cancel_challan(
            db, current_user.school_id, challan_id, changed_by=current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
