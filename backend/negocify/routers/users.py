"""User administration routes.

Who may do what:
  - list a warehouse's users      → "administrador" in that warehouse
  - view / edit / delete a user   → may manage that user (services.users.can_manage_user)
  - grant roles in a warehouse    → "administrador" in that warehouse
  - create users at all           → administrator of something (require_any_admin)

System-admin status is never granted through the API.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.deps import get_current_principal, require_any_admin, require_warehouse_role
from negocify.auth.permissions import ROLE_ADMIN
from negocify.auth.principal import Principal
from negocify.database import get_db
from negocify.middleware.exceptions import PermissionDeniedError, ResourceNotFoundError
from negocify.models.user import User
from negocify.models.warehouse import Role, UserRoleWarehouse
from negocify.schemas.user import UserCreate, UserDetail, UserUpdate, WarehouseUserOut
from negocify.services import users as user_service

router = APIRouter()


async def _get_manageable_user(db: AsyncSession, principal: Principal, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise ResourceNotFoundError("User", user_id)
    if user.id != principal.user.id and not await user_service.can_manage_user(
        db, principal, user.id
    ):
        raise PermissionDeniedError("You cannot manage this user")
    return user


@router.get("/", response_model=list[WarehouseUserOut])
async def list_warehouse_users(
    warehouse_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_warehouse_role(principal, {ROLE_ADMIN}, warehouse_id)

    result = await db.execute(
        select(
            User.id, User.name, User.surname, User.email, User.phone,
            Role.id.label("role_id"), Role.name.label("role_name"),
        )
        .join(UserRoleWarehouse, UserRoleWarehouse.user_id == User.id)
        .join(Role, Role.id == UserRoleWarehouse.role_id)
        .where(UserRoleWarehouse.warehouse_id == warehouse_id)
        .order_by(User.surname, User.name)
    )
    return [WarehouseUserOut(**row._mapping) for row in result]


@router.get("/{user_id}", response_model=UserDetail)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = await _get_manageable_user(db, principal, user_id)
    return await user_service.build_user_detail(db, user)


@router.post("/", response_model=UserDetail, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_any_admin),
):
    if not user_service.can_assign(principal, body.assignments):
        raise PermissionDeniedError("You can only assign roles in warehouses you administer")

    user = await user_service.create_user(db, body)
    return await user_service.build_user_detail(db, user)


@router.put("/{user_id}", response_model=UserDetail)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = await _get_manageable_user(db, principal, user_id)

    if body.assignments is not None:
        # Reassigning roles is an admin action, even on yourself
        if not await user_service.can_manage_user(db, principal, user.id):
            raise PermissionDeniedError("You cannot change this user's roles")
        if not user_service.can_assign(principal, body.assignments):
            raise PermissionDeniedError("You can only assign roles in warehouses you administer")

    user = await user_service.update_user(db, user, body)
    return await user_service.build_user_detail(db, user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = await _get_manageable_user(db, principal, user_id)
    await user_service.delete_user(db, user)
