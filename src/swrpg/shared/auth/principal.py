"""The authenticated caller as seen by the policy engine."""

from __future__ import annotations

from dataclasses import dataclass

from src.swrpg.shared.auth.enums import Role


@dataclass(frozen=True)
class Principal:
    """Immutable caller identity for the lifetime of one request.

    Attributes:
        id: User ID (None for the implicit guest)
        roles: Declared roles, unvalidated; may be empty or hold duplicates
        username: Display name, when the credential carries one
        auth_method: How the caller authenticated ("bearer", "api_key", None)
    """

    id: str | None
    roles: tuple[str, ...] = ()
    username: str | None = None
    auth_method: str | None = None

    @property
    def is_guest(self) -> bool:
        return self.id is None


GUEST_PRINCIPAL = Principal(id=None, roles=(Role.GUEST.value,))


def principal_or_guest(principal: Principal | None) -> Principal:
    """Absence of a principal is an implicit guest."""
    return principal if principal is not None else GUEST_PRINCIPAL
