from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from negocify.schemas.auth import UserOut


class RoleAssignment(BaseModel):
    warehouse_id: int
    role_id: int


def _one_role_per_warehouse(assignments: list[RoleAssignment]) -> list[RoleAssignment]:
    warehouse_ids = [a.warehouse_id for a in assignments]
    if len(warehouse_ids) != len(set(warehouse_ids)):
        raise ValueError("A user can hold only one role per warehouse")
    return assignments


Assignments = Annotated[list[RoleAssignment], AfterValidator(_one_role_per_warehouse)]


class UserCreate(BaseModel):
    """Admin creates a user and (optionally) assigns warehouse roles."""
    name: str = Field(min_length=1)
    surname: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    phone: str | None = Field(default=None, max_length=20)
    assignments: Assignments = []


class UserUpdate(BaseModel):
    """Partial update. `assignments`, when given, replaces every existing role."""
    name: str | None = Field(default=None, min_length=1)
    surname: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8)
    phone: str | None = Field(default=None, max_length=20)
    assignments: Assignments | None = None


class AssignmentOut(BaseModel):
    warehouse_id: int
    warehouse_name: str
    role_id: int
    role_name: str


class UserDetail(UserOut):
    is_system_admin: bool = False
    assignments: list[AssignmentOut] = []


class WarehouseUserOut(UserOut):
    """A user as seen from one warehouse, with their role there."""
    role_id: int
    role_name: str
