from fastapi import Depends, HTTPException, status

from feedesk.auth.dependencies import get_current_user
from feedesk.auth.schemas import CurrentUser
from feedesk.core.enums import Permission, UserRole


def check_permission(permission: Permission):
    """
    Dependency factory to enforce a specific permission.

    Example:
        Depends(check_permission(Permission.MANAGE_FEES))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        if current_user.role == UserRole.OWNER.value:
            return
        if permission.value not in (current_user.permissions or []):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

    return _checker
