"""User administration: create, update, reassign roles, delete.

Role reassignment is delete-all-then-recreate. Every function here only
flushes; the caller's session transaction (one per request, see
database.get_db) makes each operation atomic, so a user is never left with
zero roles halfway through a reassignment and a failed validation never
leaves an orphan account behind.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.password import hash_password
from negocify.auth.permissions import ROLE_ADMIN, is_authorized, is_system_admin, require_admin
from negocify.auth.principal import Principal
from negocify.middleware.exceptions import BusinessLogicError, DuplicateRecordError
from negocify.models.user import SystemAdministrator, User
from negocify.models.warehouse import Role, UserRoleWarehouse, Warehouse
from negocify.schemas.user import AssignmentOut, RoleAssignment, UserCreate, UserDetail, UserUpdate


# ── Lookups ─────────────────────────────────────────────────

async def get_assignments(db: AsyncSession, user_id: int) -> list[AssignmentOut]:
    result = await db.execute(
        select(
            UserRoleWarehouse.warehouse_id,
            Warehouse.name.label("warehouse_name"),
            UserRoleWarehouse.role_id,
            Role.name.label("role_name"),
        )
        .join(Warehouse, Warehouse.id == UserRoleWarehouse.warehouse_id)
        .join(Role, Role.id == UserRoleWarehouse.role_id)
        .where(UserRoleWarehouse.user_id == user_id)
        .order_by(Warehouse.name.asc())
    )
    return [AssignmentOut(**row._mapping) for row in result]


async def build_user_detail(db: AsyncSession, user: User) -> UserDetail:
    return UserDetail(
        id=user.id,
        name=user.name,
        surname=user.surname,
        email=user.email,
        phone=user.phone,
        is_system_admin=await is_system_admin(db, user.id),
        assignments=await get_assignments(db, user.id),
    )


async def _assigned_warehouse_ids(db: AsyncSession, user_id: int) -> list[int]:
    result = await db.execute(
        select(UserRoleWarehouse.warehouse_id).where(UserRoleWarehouse.user_id == user_id)
    )
    return list(result.scalars().all())


async def _ensure_email_available(
    db: AsyncSession, email: str, exclude_user_id: int | None = None
) -> None:
    stmt = select(User.id).where(User.email == email)
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    if (await db.execute(stmt)).first() is not None:
        raise DuplicateRecordError("Email already registered")


# ── Escalation checks ───────────────────────────────────────

async def can_manage_user(db: AsyncSession, principal: Principal, target_user_id: int) -> bool:
    """Whether `principal` may view, edit or delete the target account.

    System admins manage everyone. Nobody else may touch a system admin.
    Warehouse admins manage a user only if they administer every warehouse
    that user belongs to; users with no roles at all are manageable by any
    administrator.
    """
    if principal.is_system_admin:
        return True
    if await is_system_admin(db, target_user_id):
        return False

    warehouse_ids = await _assigned_warehouse_ids(db, target_user_id)
    if not warehouse_ids:
        return await require_admin(db, principal.user.id)
    return all(is_authorized(principal, {ROLE_ADMIN}, w) for w in warehouse_ids)


def can_assign(principal: Principal, assignments: list[RoleAssignment]) -> bool:
    """Only an administrator of a warehouse may grant roles in it."""
    return all(is_authorized(principal, {ROLE_ADMIN}, a.warehouse_id) for a in assignments)


# ── Role assignments ────────────────────────────────────────

async def _validate_assignments(db: AsyncSession, assignments: list[RoleAssignment]) -> None:
    """Batch-check that every referenced role and warehouse exists."""
    role_ids = {a.role_id for a in assignments}
    warehouse_ids = {a.warehouse_id for a in assignments}

    found_roles = set(
        (await db.execute(select(Role.id).where(Role.id.in_(role_ids)))).scalars().all()
    )
    missing_roles = role_ids - found_roles
    if missing_roles:
        raise BusinessLogicError(
            "One or more roles do not exist",
            error_code="UNKNOWN_ROLE",
            details={"role_ids": sorted(missing_roles)},
        )

    found_warehouses = set(
        (await db.execute(select(Warehouse.id).where(Warehouse.id.in_(warehouse_ids))))
        .scalars()
        .all()
    )
    missing_warehouses = warehouse_ids - found_warehouses
    if missing_warehouses:
        raise BusinessLogicError(
            "One or more warehouses do not exist",
            error_code="UNKNOWN_WAREHOUSE",
            details={"warehouse_ids": sorted(missing_warehouses)},
        )


async def replace_assignments(
    db: AsyncSession, user_id: int, assignments: list[RoleAssignment]
) -> None:
    """Replace all of a user's warehouse roles.

    Validation runs before anything is deleted; delete and insert share the
    caller's transaction.
    """
    if assignments:
        await _validate_assignments(db, assignments)

    await db.execute(delete(UserRoleWarehouse).where(UserRoleWarehouse.user_id == user_id))
    db.add_all(
        UserRoleWarehouse(user_id=user_id, warehouse_id=a.warehouse_id, role_id=a.role_id)
        for a in assignments
    )
    await db.flush()


# ── CRUD ────────────────────────────────────────────────────

async def create_user(db: AsyncSession, body: UserCreate) -> User:
    await _ensure_email_available(db, body.email)
    if body.assignments:
        await _validate_assignments(db, body.assignments)

    user = User(
        name=body.name,
        surname=body.surname,
        email=body.email,
        password_hash=hash_password(body.password),
        phone=body.phone,
    )
    db.add(user)
    await db.flush()  # populate user.id

    db.add_all(
        UserRoleWarehouse(user_id=user.id, warehouse_id=a.warehouse_id, role_id=a.role_id)
        for a in body.assignments
    )
    await db.flush()
    return user


async def update_user(db: AsyncSession, user: User, body: UserUpdate) -> User:
    if body.email is not None and body.email != user.email:
        await _ensure_email_available(db, body.email, exclude_user_id=user.id)
        user.email = body.email
    if body.name is not None:
        user.name = body.name
    if body.surname is not None:
        user.surname = body.surname
    if body.phone is not None:
        user.phone = body.phone
    if body.password:
        user.password_hash = hash_password(body.password)

    if body.assignments is not None:
        await replace_assignments(db, user.id, body.assignments)

    await db.flush()
    return user


async def delete_user(db: AsyncSession, user: User) -> None:
    await db.execute(delete(UserRoleWarehouse).where(UserRoleWarehouse.user_id == user.id))
    await db.execute(delete(SystemAdministrator).where(SystemAdministrator.user_id == user.id))
    await db.delete(user)
    await db.flush()
