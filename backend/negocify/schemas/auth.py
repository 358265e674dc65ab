from pydantic import BaseModel, EmailStr, Field


# ── Self-registration ───────────────────────────────────────

class RegisterRequest(BaseModel):
    """New account with no warehouse roles; an admin assigns them later."""
    name: str = Field(min_length=1)
    surname: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    phone: str | None = Field(default=None, max_length=20)


# ── Login ────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    id: int
    name: str
    surname: str
    email: str
    phone: str | None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# ── Current principal ───────────────────────────────────────

class WarehouseGrantOut(BaseModel):
    id: int
    name: str
    address: str | None
    role: str
    role_id: int

    model_config = {"from_attributes": True}


class PrincipalOut(UserOut):
    """The caller plus their freshly computed permissions."""
    is_system_admin: bool
    warehouses: list[WarehouseGrantOut]
