from src.user.auth.permissions.enum import Permission
from src.user.enums import UserRole

ROLE_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    # Admin - everything
    UserRole.ADMIN: frozenset(Permission),
    # Manager - runs the catalogue and stock, reads users and audit trail
    UserRole.MANAGER: frozenset(
        {
            Permission.VIEW_PRODUCTS,
            Permission.CREATE_PRODUCT,
            Permission.UPDATE_PRODUCT,
            Permission.VIEW_INVENTORY,
            Permission.ADJUST_INVENTORY,
            Permission.TRANSFER_INVENTORY,
            Permission.VIEW_USERS,
            Permission.VIEW_REPORTS,
            Permission.GENERATE_REPORTS,
            Permission.VIEW_AUDIT_LOGS,
        }
    ),
    # Supervisor - day to day stock operations
    UserRole.SUPERVISOR: frozenset(
        {
            Permission.VIEW_PRODUCTS,
            Permission.UPDATE_PRODUCT,
            Permission.VIEW_INVENTORY,
            Permission.ADJUST_INVENTORY,
            Permission.VIEW_REPORTS,
            Permission.VIEW_AUDIT_LOGS,
        }
    ),
    UserRole.USER: frozenset(
        {
            Permission.VIEW_PRODUCTS,
            Permission.VIEW_INVENTORY,
            Permission.VIEW_REPORTS,
        }
    ),
    # Auditor - read access plus audit export
    UserRole.AUDITOR: frozenset(
        {
            Permission.VIEW_PRODUCTS,
            Permission.VIEW_INVENTORY,
            Permission.VIEW_REPORTS,
            Permission.VIEW_AUDIT_LOGS,
            Permission.EXPORT_AUDIT_LOGS,
        }
    ),
    UserRole.VIEWER: frozenset(
        {
            Permission.VIEW_PRODUCTS,
            Permission.VIEW_INVENTORY,
        }
    ),
}


def permissions_for_role(role: UserRole | str) -> frozenset[Permission]:
    try:
        return ROLE_PERMISSIONS.get(UserRole(role), frozenset())
    except ValueError:
        return frozenset()
