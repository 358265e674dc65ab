"""Auth routes: register, login, current principal.

Route overview:
  POST /register  self-registration (no warehouse roles until an admin assigns them)
  POST /login     email + password login
  GET  /me        the caller plus freshly computed warehouse permissions
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.deps import get_current_principal
from negocify.auth.jwt import create_access_token
from negocify.auth.password import DUMMY_PASSWORD_HASH, hash_password, verify_password
from negocify.auth.principal import Principal
from negocify.database import get_db
from negocify.middleware.exceptions import AuthenticationError, DuplicateRecordError
from negocify.models.user import User
from negocify.schemas.auth import (
    LoginRequest,
    PrincipalOut,
    RegisterRequest,
    TokenResponse,
    UserOut,
    WarehouseGrantOut,
)

router = APIRouter()


def _build_token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(
            user_id=user.id,
            email=user.email,
            name=user.name,
            surname=user.surname,
        ),
        user=UserOut.model_validate(user),
    )


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    existing = await db.execute(select(User.id).where(User.email == body.email))
    if existing.first() is not None:
        raise DuplicateRecordError("Email already registered")

    user = User(
        name=body.name,
        surname=body.surname,
        email=body.email,
        password_hash=hash_password(body.password),
        phone=body.phone,
    )
    db.add(user)
    await db.flush()

    return _build_token_response(user)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    # Same answer, and the same hashing work, for unknown email and wrong password
    password_hash = user.password_hash if user else DUMMY_PASSWORD_HASH
    password_ok = verify_password(body.password, password_hash)
    if not user or not password_ok:
        raise AuthenticationError("Invalid credentials", "INVALID_CREDENTIALS")

    return _build_token_response(user)


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=PrincipalOut)
async def me(principal: Principal = Depends(get_current_principal)):
    return PrincipalOut(
        id=principal.user.id,
        name=principal.user.name,
        surname=principal.user.surname,
        email=principal.user.email,
        phone=principal.user.phone,
        is_system_admin=principal.profile.is_system_admin,
        warehouses=[
            WarehouseGrantOut.model_validate(grant)
            for grant in principal.profile.warehouses
        ],
    )
