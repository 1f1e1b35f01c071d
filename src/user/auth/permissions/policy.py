"""
Single place where role requirements are evaluated.

Two kinds of requirement coexist: a minimum rank in the role hierarchy and
membership in a named role set. They do not always agree (AUDITOR ranks below
USER yet may read), which is why the sets are configuration and not derived
from the ranks.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache

from src.main.config import AuthConfig, config
from src.user.auth.permissions.hierarchy import ROLE_RANKS, has_role_access
from src.user.enums import UserRole

WRITE_ROLE_SET = "write"
READ_ROLE_SET = "read"


@dataclass(frozen=True)
class RankRequirement:
    minimum_role: UserRole


@dataclass(frozen=True)
class RoleSetRequirement:
    name: str


Requirement = RankRequirement | RoleSetRequirement


class RolePolicy:
    def __init__(self, role_sets: Mapping[str, Iterable[str]]) -> None:
        # An empty set admits every mapped role
        self.role_sets: dict[str, frozenset[str]] = {
            name: frozenset(str(role) for role in roles)
            for name, roles in role_sets.items()
        }

    def members(self, name: str) -> frozenset[str]:
        if name not in self.role_sets:
            raise KeyError(f"Unknown role set: {name}")
        return self.role_sets[name] or frozenset(ROLE_RANKS)

    def allows(self, role: UserRole | str | None, requirement: Requirement) -> bool:
        if role is None:
            return False
        if isinstance(requirement, RankRequirement):
            return has_role_access(role, requirement.minimum_role)
        return str(role) in self.members(requirement.name) and str(role) in ROLE_RANKS


def build_role_policy(auth_config: AuthConfig) -> RolePolicy:
    return RolePolicy(
        {
            WRITE_ROLE_SET: auth_config.AUTHZ_WRITE_ROLES,
            READ_ROLE_SET: auth_config.AUTHZ_READ_ROLES,
        }
    )


@lru_cache
def get_role_policy() -> RolePolicy:
    return build_role_policy(config.auth)
