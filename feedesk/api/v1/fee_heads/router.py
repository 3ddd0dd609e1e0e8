"""Fee heads router."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.dependencies import get_current_user
from feedesk.auth.rbac import check_permission
from feedesk.auth.schemas import CurrentUser
from feedesk.core.enums import Permission
from feedesk.core.exceptions import ServiceError
from feedesk.db.session import get_db

from .schemas import FeeHeadCreate, FeeHeadResponse, FeeHeadUpdate
from . import service

router = APIRouter(prefix="/api/v1/fee-heads", tags=["fee-heads"])


@router.post(
    "",
    response_model=FeeHeadResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEE_HEADS))],
)
async def create_fee_head(
    payload: FeeHeadCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeHeadResponse:
    try:
        return await service.create_fee_head(
            db, current_user.school_id, payload, changed_by=current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[FeeHeadResponse],
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def list_fee_heads(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[FeeHeadResponse]:
    return await service.list_fee_heads(db, current_user.school_id)


@router.get(
    "/{fee_head_id}",
    response_model=FeeHeadResponse,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEES))],
)
async def get_fee_head(
    fee_head_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeHeadResponse:
    fh = await service.get_fee_head(db, current_user.school_id, fee_head_id)
    if not fh:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fee head not found",
        )
    return fh


@router.patch(
    "/{fee_head_id}",
    response_model=FeeHeadResponse,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEE_HEADS))],
)
async def update_fee_head(
    fee_head_id: UUID,
    payload: FeeHeadUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeHeadResponse:
    try:
        fh = await service.update_fee_head(
            db, current_user.school_id, fee_head_id, payload, changed_by=current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not fh:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fee head not found",
        )
    return fh


@router.delete(
    "/{fee_head_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission(Permission.MANAGE_FEE_HEADS))],
)
async def delete_fee_head(
    fee_head_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    try:
        deleted = await service.delete_fee_head(
            db, current_user.school_id, fee_head_id, changed_by=current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fee head not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
