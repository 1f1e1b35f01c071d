from enum import StrEnum


class UserRole(StrEnum):
    ADMIN = "ADMIN"  # Full system access
    MANAGER = "MANAGER"  # Manages products, inventory and reports
    SUPERVISOR = "SUPERVISOR"  # Oversees daily inventory operations
    USER = "USER"  # Regular operator
    AUDITOR = "AUDITOR"  # Read access plus audit logs
    VIEWER = "VIEWER"  # Read-only access

    @classmethod
    def values(cls) -> set[str]:
        return {item.value for item in cls.__members__.values()}
