"""Role-based access control (RBAC) for CourseFlow.

Hierarchical permission system:
- ADMIN (level 3): Full system access
- INSTRUCTOR (level 2): Author own courses, assign and follow students
- STUDENT (level 1): Enroll in public courses and learn
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels.

    ADMIN can do everything INSTRUCTOR can do, and more.
    INSTRUCTOR can do everything STUDENT can do, and more.
    """

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.STUDENT: 1,
    UserRole.INSTRUCTOR: 2,
    UserRole.ADMIN: 3,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role (0 for unknown roles)."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.INSTRUCTOR)
        True
        >>> has_permission(UserRole.STUDENT, UserRole.INSTRUCTOR)
        False
        >>> has_permission("admin", "student")
        True
    """
    return get_role_level(user_role) >= get_role_level(required_role)
