"""Warehouse-scoped RBAC for Negocify.

Design:
  - A user is either a *system administrator* (row in
    `administradores_sistema`) or holds one role per warehouse through the
    `usuario_rol_almacen` join table.
  - `resolve_permissions(db, user_id)` computes the AuthorizationProfile
    fresh from the database. Nothing is cached between requests.
  - `is_authorized(principal, roles, warehouse_id)` is the pure allow/deny
    predicate every route calls with the target resource's warehouse.
  - `require_admin(db, user_id)` answers "is this user an administrator of
    anything", for resource classes that aren't tied to one warehouse.

Role names are matched exactly (case-sensitive) against `rol.name`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.principal import AuthorizationProfile, Principal, WarehouseGrant, canonical_id
from negocify.middleware.exceptions import InternalError
from negocify.models.user import SystemAdministrator
from negocify.models.warehouse import Role, UserRoleWarehouse, Warehouse

logger = logging.getLogger(__name__)


# ── Role names ──────────────────────────────────────────────

ROLE_ADMIN = "administrador"
ROLE_EMPLOYEE = "empleado"

# Synthetic grant attached to every warehouse for system administrators.
# role_id -1 means "no real rol row behind this grant".
SYSTEM_ADMIN_ROLE = "Administrador Sistema"
SYSTEM_ADMIN_ROLE_ID = -1


class ResolutionError(Exception):
    """The identity store could not be read while computing permissions."""


# ── Resolution ──────────────────────────────────────────────

async def is_system_admin(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(
        select(SystemAdministrator.id).where(SystemAdministrator.user_id == user_id)
    )
    return result.first() is not None


async def _all_warehouses_as_admin(db: AsyncSession) -> list[WarehouseGrant]:
    result = await db.execute(
        select(Warehouse.id, Warehouse.name, Warehouse.address)
        .order_by(Warehouse.name.asc(), Warehouse.id.asc())
    )
    return [
        WarehouseGrant(
            id=row.id,
            name=row.name,
            address=row.address,
            role=SYSTEM_ADMIN_ROLE,
            role_id=SYSTEM_ADMIN_ROLE_ID,
        )
        for row in result
    ]


async def _assigned_warehouses(db: AsyncSession, user_id: int) -> list[WarehouseGrant]:
    result = await db.execute(
        select(
            UserRoleWarehouse.id.label("assignment_id"),
            UserRoleWarehouse.warehouse_id.label("assigned_warehouse_id"),
            UserRoleWarehouse.role_id.label("assigned_role_id"),
            Warehouse.id.label("warehouse_id"),
            Warehouse.name.label("warehouse_name"),
            Warehouse.address.label("warehouse_address"),
            Role.id.label("role_id"),
            Role.name.label("role_name"),
        )
        .outerjoin(Warehouse, Warehouse.id == UserRoleWarehouse.warehouse_id)
        .outerjoin(Role, Role.id == UserRoleWarehouse.role_id)
        .where(UserRoleWarehouse.user_id == user_id)
        .order_by(Warehouse.name.asc(), UserRoleWarehouse.id.asc())
    )

    grants: list[WarehouseGrant] = []
    seen: set[str] = set()
    for row in result:
        if row.warehouse_id is None or row.role_id is None:
            logger.warning(
                f"Dropping dangling role assignment {row.assignment_id} for user {user_id}",
                extra={
                    "user_id": user_id,
                    "assignment_id": row.assignment_id,
                    "warehouse_id": row.assigned_warehouse_id,
                    "role_id": row.assigned_role_id,
                },
            )
            continue

        key = canonical_id(row.warehouse_id)
        if key in seen:
            logger.warning(
                f"User {user_id} holds more than one role in warehouse {row.warehouse_id}",
                extra={"user_id": user_id, "warehouse_id": row.warehouse_id},
            )
        seen.add(key)

        grants.append(
            WarehouseGrant(
                id=row.warehouse_id,
                name=row.warehouse_name,
                address=row.warehouse_address,
                role=row.role_name,
                role_id=row.role_id,
            )
        )
    return grants


async def resolve_permissions(db: AsyncSession, user_id: int) -> AuthorizationProfile:
    """Compute the user's AuthorizationProfile.

    1. System administrators get every warehouse (ordered by name), each
       tagged with the synthetic "Administrador Sistema" role.
    2. Everyone else gets their join-table grants, ordered by warehouse name.
       Rows whose warehouse or role is missing are dropped and logged.

    Raises ResolutionError if the database can't be read.
    """
    try:
        system_admin = await is_system_admin(db, user_id)
        if system_admin:
            warehouses = await _all_warehouses_as_admin(db)
        else:
            warehouses = await _assigned_warehouses(db, user_id)
    except SQLAlchemyError as exc:
        logger.error(
            f"Could not resolve permissions for user {user_id}: {exc}",
            extra={"user_id": user_id},
        )
        raise ResolutionError(f"Could not resolve permissions for user {user_id}") from exc

    return AuthorizationProfile(
        is_system_admin=system_admin,
        warehouses=tuple(warehouses),
    )


# ── Predicate ───────────────────────────────────────────────

def is_authorized(
    principal: Principal | None,
    required_roles: Iterable[str] | None,
    target_warehouse_id,
) -> bool:
    """Decide whether `principal` may act on `target_warehouse_id`.

    - No principal or no target → False.
    - System administrators → True, for every warehouse and role.
    - No grant for the warehouse → False.
    - Empty `required_roles` → any role in the warehouse suffices.
    - Otherwise the grant's role name must be one of `required_roles`.

    Never raises; a denial is an ordinary outcome and is logged at DEBUG.
    """
    if principal is None or canonical_id(target_warehouse_id) is None:
        return False

    if principal.profile.is_system_admin:
        return True

    grant = principal.profile.grant_for(target_warehouse_id)
    if grant is None:
        logger.debug(
            f"User {principal.user.id} has no access to warehouse {target_warehouse_id}"
        )
        return False

    if isinstance(required_roles, str):
        required_roles = (required_roles,)
    roles = frozenset(required_roles or ())
    if roles and grant.role not in roles:
        logger.debug(
            f"Role '{grant.role}' of user {principal.user.id} in warehouse "
            f"{target_warehouse_id} not in {sorted(roles)}"
        )
        return False

    return True


# ── Admin escalation guard ──────────────────────────────────

async def require_admin(db: AsyncSession, user_id: int) -> bool:
    """True if the user is a system admin or "administrador" in any warehouse.

    A missing "administrador" row in `rol` is a configuration defect and
    grants nothing. Raises InternalError if the database can't be read.
    """
    try:
        if await is_system_admin(db, user_id):
            return True

        admin_role_id = (
            await db.execute(select(Role.id).where(Role.name == ROLE_ADMIN))
        ).scalar_one_or_none()
        if admin_role_id is None:
            logger.warning(f"Role '{ROLE_ADMIN}' is missing from the rol table")
            return False

        result = await db.execute(
            select(UserRoleWarehouse.id)
            .where(
                UserRoleWarehouse.user_id == user_id,
                UserRoleWarehouse.role_id == admin_role_id,
            )
            .limit(1)
        )
        return result.first() is not None
    except SQLAlchemyError as exc:
        logger.error(
            f"Admin check failed for user {user_id}: {exc}",
            extra={"user_id": user_id},
        )
        raise InternalError("Could not verify administrator status") from exc
