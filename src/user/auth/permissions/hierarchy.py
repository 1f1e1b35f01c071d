from src.user.enums import UserRole

ROLE_RANKS: dict[str, int] = {
    UserRole.ADMIN: 6,
    UserRole.MANAGER: 5,
    UserRole.SUPERVISOR: 4,
    UserRole.USER: 3,
    UserRole.AUDITOR: 2,
    UserRole.VIEWER: 1,
}

UNMAPPED_ROLE_RANK = 0


def get_role_rank(role: UserRole | str | None) -> int:
    if role is None:
        return UNMAPPED_ROLE_RANK
    return ROLE_RANKS.get(str(role), UNMAPPED_ROLE_RANK)


def has_role_access(actual: UserRole | str | None, required: UserRole | str) -> bool:
    """
    True when `actual` ranks at least as high as `required`.
    Unmapped roles on either side never grant access.
    """
    actual_rank = get_role_rank(actual)
    required_rank = get_role_rank(required)
    if actual_rank == UNMAPPED_ROLE_RANK or required_rank == UNMAPPED_ROLE_RANK:
        return False
    return actual_rank >= required_rank
