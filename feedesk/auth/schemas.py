from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for RBAC checks.
    Built from the claims of the token issued by the external auth provider.
    """

    id: UUID
    school_id: UUID
    role: str
    permissions: List[str] = Field(default_factory=list)
