from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request

from src.core.errors.exceptions import PermissionDeniedException, ValidationException
from src.user.auth.dependencies import get_current_identity
from src.user.auth.permissions.enum import Permission
from src.user.auth.permissions.policy import (
    READ_ROLE_SET,
    WRITE_ROLE_SET,
    RankRequirement,
    Requirement,
    RolePolicy,
    RoleSetRequirement,
    get_role_policy,
)
from src.user.auth.permissions.role_matrix import permissions_for_role
from src.user.auth.schemas import AuthIdentity
from src.user.enums import UserRole

IdentityChecker = Callable[..., Awaitable[AuthIdentity]]

INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


def _require(requirement: Requirement) -> IdentityChecker:
    async def checker(
        identity: Annotated[AuthIdentity, Depends(get_current_identity)],
        policy: Annotated[RolePolicy, Depends(get_role_policy)],
    ) -> AuthIdentity:
        if not policy.allows(identity.role, requirement):
            raise PermissionDeniedException(
                INSUFFICIENT_PERMISSIONS,
                {"role": str(identity.role), "required": repr(requirement)},
            )
        return identity

    return checker


def require_role(minimum_role: UserRole) -> IdentityChecker:
    """Caller's role must rank at least as high as `minimum_role`."""
    return _require(RankRequirement(minimum_role))


def require_role_set(name: str) -> IdentityChecker:
    """Caller's role must belong to the named role set."""
    return _require(RoleSetRequirement(name))


require_admin = require_role(UserRole.ADMIN)
require_manager = require_role(UserRole.MANAGER)
require_supervisor = require_role(UserRole.SUPERVISOR)
require_user = require_role(UserRole.USER)
require_auditor = require_role(UserRole.AUDITOR)
require_viewer = require_role(UserRole.VIEWER)

require_write_permissions = require_role_set(WRITE_ROLE_SET)
require_read_permissions = require_role_set(READ_ROLE_SET)


def require_permission(required_permission: Permission) -> IdentityChecker:
    async def checker(
        identity: Annotated[AuthIdentity, Depends(get_current_identity)],
    ) -> AuthIdentity:
        if identity.role == UserRole.ADMIN:
            return identity
        if required_permission not in permissions_for_role(identity.role):
            raise PermissionDeniedException(
                INSUFFICIENT_PERMISSIONS,
                {"role": str(identity.role), "permission": str(required_permission)},
            )
        return identity

    return checker


def require_owner_or_admin(param: str = "user_id") -> IdentityChecker:
    """
    Caller must be ADMIN or the user addressed by the `param` path parameter.
    """

    async def checker(
        request: Request,
        identity: Annotated[AuthIdentity, Depends(get_current_identity)],
    ) -> AuthIdentity:
        if identity.role == UserRole.ADMIN:
            return identity
        raw_value = request.path_params.get(param)
        try:
            target_id = int(raw_value)
        except (TypeError, ValueError):
            raise ValidationException(
                f"Path parameter '{param}' must be an integer",
                {"value": raw_value},
            )
        if target_id != identity.subject_id:
            raise PermissionDeniedException(
                "You can only access your own resources",
                {"subject_id": identity.subject_id, "target_id": target_id},
            )
        return identity

    return checker
