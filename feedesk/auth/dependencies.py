from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from feedesk.auth.permissions import permissions_for_role
from feedesk.auth.schemas import CurrentUser
from feedesk.core.config import settings


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:
    """Resolve the caller from the access token. Tokens are issued elsewhere; only the signature and claims are checked here."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or not credentials.credentials:
        raise credentials_exception

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("user_id") or payload.get("sub")
    school_id_str = payload.get("school_id")
    role_name = payload.get("role")
    if not user_id_str or not school_id_str or not role_name:
        raise credentials_exception

    try:
        user_id = UUID(str(user_id_str))
        school_id = UUID(str(school_id_str))
    except ValueError:
        raise credentials_exception

    return CurrentUser(
        id=user_id,
        school_id=school_id,
        role=role_name,
        permissions=permissions_for_role(role_name),
    )
