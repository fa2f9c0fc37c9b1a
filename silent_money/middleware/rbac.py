"""
Role-based access control for FastAPI routes.

Provides:
- Role to permission mapping
- Permission lookups for a caller
- PermissionChecker dependency for route guards
- Guards protecting owners and self-targeting admin actions
"""

import structlog
from typing import Dict, List, Set, Union
from fastapi import Depends, HTTPException, status

from silent_money.dependencies import get_current_active_user
from silent_money.exceptions import PermissionDeniedError
from silent_money.models.auth import CurrentUser, Permission, Role

logger = structlog.get_logger(__name__)


# ============================================================================
# ROLE PERMISSION MAPPING
# ============================================================================

MEMBER_PERMISSIONS: Set[Permission] = {
    Permission.SUBMIT_ASSETS,
    Permission.REVIEW,
    Permission.SAVE,
    Permission.REQUEST_AUDIT,
}

MODERATOR_PERMISSIONS: Set[Permission] = MEMBER_PERMISSIONS | {
    Permission.VIEW_ADMIN_DASHBOARD,
    Permission.MODERATE_ASSETS,
}

ADMIN_PERMISSIONS: Set[Permission] = MODERATOR_PERMISSIONS | {
    Permission.MANAGE_AUDITS,
    Permission.MANAGE_CATEGORIES,
    Permission.MANAGE_USERS,
    Permission.VIEW_ADMIN_LOGS,
    Permission.MANAGE_STORAGE,
}

ROLE_PERMISSIONS: Dict[Role, Set[Permission]] = {
    Role.USER: MEMBER_PERMISSIONS,
    Role.MODERATOR: MODERATOR_PERMISSIONS,
    Role.ADMIN: ADMIN_PERMISSIONS,
    Role.SUPER_ADMIN: ADMIN_PERMISSIONS | {Permission.MANAGE_ADMINS},
    Role.OWNER: ADMIN_PERMISSIONS | {Permission.MANAGE_ADMINS},
}


# ============================================================================
# PERMISSION UTILITIES
# ============================================================================


def get_role_permissions(role: Union[Role, str]) -> Set[Permission]:
    """
    Get all permissions for a role.

    Args:
        role: Role or role name

    Returns:
        Set of permissions (empty for unknown role names)
    """
    try:
        return set(ROLE_PERMISSIONS.get(Role(role), set()))
    except ValueError:
        logger.warning("invalid_role_name", role=str(role))
        return set()


def has_permission(user: CurrentUser, permission: Permission) -> bool:
    return permission in get_role_permissions(user.role)


def get_missing_permissions(user: CurrentUser, required: List[Permission]) -> List[Permission]:
    granted = get_role_permissions(user.role)
    return [perm for perm in required if perm not in granted]


def ensure_can_manage_target(actor: CurrentUser, target: Dict) -> None:
    """
    Reject user-management actions on owners and on oneself.

    Args:
        actor: Admin performing the action
        target: Profile row being changed

    Raises:
        PermissionDeniedError: Target is an owner or the actor
    """
    if target["role"] == Role.OWNER.value:
        logger.warning("owner_protected", admin_id=str(actor.id), target_id=str(target["id"]))
        raise PermissionDeniedError("The platform owner cannot be modified")
    if target["id"] == actor.id:
        logger.warning("self_targeting_denied", admin_id=str(actor.id))
        raise PermissionDeniedError("You cannot perform this action on your own account")


# ============================================================================
# FASTAPI DEPENDENCY INJECTION HELPERS
# ============================================================================


class PermissionChecker:
    """
    Dependency class for checking caller permissions in FastAPI endpoints.

    Example:
        @router.post("/ideas/{idea_id}/approve")
        async def approve(
            admin: CurrentUser = Depends(PermissionChecker([Permission.MODERATE_ASSETS]))
        ):
            ...
    """

    def __init__(self, required_permissions: List[Permission]):
        """
        Initialize permission checker.

        Args:
            required_permissions: Permissions the caller must all hold
        """
        self.required_permissions = (
            required_permissions if isinstance(required_permissions, list)
            else [required_permissions]
        )

    async def __call__(
        self,
        current_user: CurrentUser = Depends(get_current_active_user)
    ) -> CurrentUser:
        """
        Check if the caller has the required permissions.

        Raises:
            HTTPException: 403 if permissions are missing
        """
        missing = get_missing_permissions(current_user, self.required_permissions)
        if missing:
            logger.warning(
                "permission_checker_access_denied",
                user_id=str(current_user.id),
                role=current_user.role.value,
                required_permissions=[p.value for p in self.required_permissions],
                missing_permissions=[p.value for p in missing]
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required permission(s): {[p.value for p in self.required_permissions]}"
            )

        return current_user


def require_permission(*permissions: Permission) -> PermissionChecker:
    """
    Dependency that requires all of the given permissions.

    Example:
        @router.get("/logs")
        async def logs(admin: CurrentUser = Depends(require_permission(Permission.VIEW_ADMIN_LOGS))):
            ...
    """
    return PermissionChecker(list(permissions))
