"""Role to permission mapping. Roles arrive in the token's "role" claim."""

from typing import Dict, List

from feedesk.core.enums import Permission, UserRole


ROLE_PERMISSIONS: Dict[str, List[Permission]] = {
    # Owner has all permissions
    UserRole.OWNER.value: list(Permission),
    UserRole.ADMIN.value: [
        Permission.MANAGE_STUDENTS,
        Permission.VIEW_STUDENT_LISTS,
        Permission.MANAGE_FEES,
        Permission.MANAGE_FEE_HEADS,
        Permission.VIEW_FINANCIAL_REPORTS,
    ],
    UserRole.ACCOUNTANT.value: [
        Permission.MANAGE_FEES,
        Permission.VIEW_FINANCIAL_REPORTS,
        # To see student names for fees
        Permission.VIEW_STUDENT_LISTS,
    ],
    UserRole.TEACHER.value: [
        Permission.VIEW_STUDENT_LISTS,
    ],
    # View-only access is handled by data filtering in the client
    UserRole.PARENT.value: [],
    UserRole.STUDENT.value: [],
}


def permissions_for_role(role: str) -> List[str]:
    return [p.value for p in ROLE_PERMISSIONS.get(role, [])]
