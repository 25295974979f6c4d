"""Role catalog: the static policy tables behind every authorization decision.

A RoleCatalog holds, per role, an explicit privilege rank (0 = most
privileged), the curated permission set and the two quotas. It is built once
at process start and never mutated, so it is shared across concurrent
requests without locking.

The catalog is an explicitly constructed value, not a module global; tests
pass alternate catalogs straight to the resolver functions.

Known anomalies reproduced on purpose (flagged for product owners):
    - admin lacks batch_generation, export_data and custom_templates even
      though the lower-ranked premium role has them.
    - Permission sets are not cumulative across ranks.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType

from src.swrpg.shared.auth.enums import Permission, Role

# Stand-in for "no limit"; compares greater than any realistic request
UNBOUNDED: int = sys.maxsize


class CatalogError(ValueError):
    """Raised when a catalog is constructed with inconsistent tables."""


@dataclass(frozen=True)
class RolePolicy:
    """Policy row for a single role."""

    role: Role
    rank: int
    permissions: frozenset[Permission]
    requests_per_hour: int
    max_tokens_per_generation: int


@dataclass(frozen=True, eq=False)
class RoleCatalog:
    """Immutable role -> policy lookup table.

    Attributes:
        policies: Read-only mapping of Role to its RolePolicy
    """

    policies: Mapping[Role, RolePolicy]

    def __post_init__(self) -> None:
        # Freeze whatever mapping we were handed
        object.__setattr__(self, "policies", MappingProxyType(dict(self.policies)))
        _validate(self.policies)

    @classmethod
    def from_policies(cls, policies: Iterable[RolePolicy]) -> RoleCatalog:
        return cls(policies={policy.role: policy for policy in policies})

    def policy_for(self, role: Role | str) -> RolePolicy:
        return self.policies[Role(role)]

    def rank_of(self, role: Role | str) -> int:
        return self.policy_for(role).rank

    def roles_by_rank(self) -> tuple[Role, ...]:
        """Roles ordered from most to least privileged."""
        return tuple(
            policy.role
            for policy in sorted(self.policies.values(), key=lambda p: p.rank)
        )


def _validate(policies: Mapping[Role, RolePolicy]) -> None:
    missing = set(Role) - set(policies)
    if missing:
        raise CatalogError(f"Catalog missing roles: {sorted(missing)}")

    for role, policy in policies.items():
        if policy.role != role:
            raise CatalogError(f"Policy for '{role}' is keyed under '{policy.role}'")

    ranks = sorted(policy.rank for policy in policies.values())
    if ranks != list(range(len(policies))):
        raise CatalogError(f"Ranks must be unique and contiguous from 0, got {ranks}")

    top = min(policies.values(), key=lambda p: p.rank)
    if top.permissions != frozenset(Permission):
        raise CatalogError(
            f"Top-ranked role '{top.role}' must hold every permission"
        )


_USER_PERMISSIONS = frozenset(
    {
        Permission.READ_PUBLIC_CONTENT,
        Permission.CREATE_SESSION,
        Permission.GENERATE_CONTENT,
    }
)


def build_default_catalog() -> RoleCatalog:
    """Build the production role catalog.

    Returns:
        A new RoleCatalog with the platform's rank, permission and quota tables
    """
    return RoleCatalog.from_policies(
        [
            RolePolicy(
                role=Role.SUPER_ADMIN,
                rank=0,
                permissions=frozenset(Permission),
                requests_per_hour=UNBOUNDED,
                max_tokens_per_generation=UNBOUNDED,
            ),
            RolePolicy(
                role=Role.ADMIN,
                rank=1,
                # No batch_generation/export_data/custom_templates; see module docstring
                permissions=_USER_PERMISSIONS
                | {
                    Permission.ADVANCED_GENERATION,
                    Permission.VIEW_USER_ACTIVITY,
                    Permission.MODERATE_CONTENT,
                    Permission.MANAGE_REPORTS,
                    Permission.MANAGE_USERS,
                    Permission.VIEW_SYSTEM_STATS,
                    Permission.CONFIGURE_SYSTEM,
                },
                requests_per_hour=2000,
                max_tokens_per_generation=8000,
            ),
            RolePolicy(
                role=Role.MODERATOR,
                rank=2,
                permissions=_USER_PERMISSIONS
                | {
                    Permission.VIEW_USER_ACTIVITY,
                    Permission.MODERATE_CONTENT,
                    Permission.MANAGE_REPORTS,
                },
                requests_per_hour=1000,
                max_tokens_per_generation=4000,
            ),
            RolePolicy(
                role=Role.PREMIUM,
                rank=3,
                permissions=_USER_PERMISSIONS
                | {
                    Permission.ADVANCED_GENERATION,
                    Permission.BATCH_GENERATION,
                    Permission.EXPORT_DATA,
                    Permission.CUSTOM_TEMPLATES,
                },
                requests_per_hour=500,
                max_tokens_per_generation=4000,
            ),
            RolePolicy(
                role=Role.USER,
                rank=4,
                permissions=_USER_PERMISSIONS,
                requests_per_hour=100,
                max_tokens_per_generation=2000,
            ),
            RolePolicy(
                role=Role.GUEST,
                rank=5,
                permissions=frozenset({Permission.READ_PUBLIC_CONTENT}),
                requests_per_hour=10,
                max_tokens_per_generation=500,
            ),
        ]
    )


@lru_cache(maxsize=1)
def get_default_catalog() -> RoleCatalog:
    """Process-wide default catalog for callers that do not inject one."""
    return build_default_catalog()
