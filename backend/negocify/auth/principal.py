"""Request-scoped identity types.

    Principal
      ├── user:    UserFields            (no credential hash, ever)
      └── profile: AuthorizationProfile
                     ├── is_system_admin
                     └── warehouses: [WarehouseGrant, ...]
"""

from __future__ import annotations

from dataclasses import dataclass, field


def canonical_id(value) -> str | None:
    """Return the canonical (string) form of an id, or None if absent.

    Ids reach the API as ints (ORM, JSON numbers) or strings (path/query
    params, JWT `sub`); both must compare equal.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class WarehouseGrant:
    id: int
    name: str
    address: str | None
    role: str
    role_id: int


@dataclass(frozen=True)
class AuthorizationProfile:
    is_system_admin: bool
    warehouses: tuple[WarehouseGrant, ...] = field(default_factory=tuple)

    def grant_for(self, warehouse_id) -> WarehouseGrant | None:
        """First grant for the given warehouse, or None."""
        target = canonical_id(warehouse_id)
        if target is None:
            return None
        for grant in self.warehouses:
            if canonical_id(grant.id) == target:
                return grant
        return None


@dataclass(frozen=True)
class UserFields:
    id: int
    name: str
    surname: str
    email: str
    phone: str | None = None


@dataclass(frozen=True)
class Principal:
    user: UserFields
    profile: AuthorizationProfile

    @property
    def id(self) -> int:
        return self.user.id

    @property
    def is_system_admin(self) -> bool:
        return self.profile.is_system_admin
