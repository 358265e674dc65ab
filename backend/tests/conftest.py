"""Pytest configuration and fixtures for Negocify tests.

Tests run against a file-backed SQLite database through aiosqlite. Every
transaction starts with BEGIN IMMEDIATE, so overlapping sale transactions
serialize the way SELECT ... FOR UPDATE makes them serialize on Postgres.
"""

import os
import tempfile
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncGenerator

_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="negocify-tests-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["DEBUG"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.jwt import create_access_token
from negocify.auth.password import hash_password
from negocify.database import Base, async_session, engine
from negocify.main import app
from negocify.models import (
    Product,
    ProductType,
    Role,
    SaleType,
    SystemAdministrator,
    User,
    UserRoleWarehouse,
    Warehouse,
)
from negocify.auth.permissions import ROLE_ADMIN, ROLE_EMPLOYEE

TEST_PASSWORD = "testpassword123"


# ── SQLite transaction behaviour ─────────────────────────────────

@event.listens_for(engine.sync_engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine.sync_engine, "begin")
def _begin_immediate(conn):
    conn.exec_driver_sql("BEGIN IMMEDIATE")


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture(autouse=True)
async def test_schema() -> AsyncGenerator[None, None]:
    """Fresh tables for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    await engine.dispose()


@pytest.fixture
def sync_engine():
    """Synchronous engine on the test database, for the management CLI."""
    engine = create_engine(f"sqlite:///{_DB_PATH}")
    yield engine
    engine.dispose()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


# ── Test Data Fixtures ───────────────────────────────────────────

@dataclass
class SeedData:
    admin_role_id: int
    employee_role_id: int
    central_id: int      # "Central"
    norte_id: int        # "Norte"
    sur_id: int          # "Sur", nobody but system admins
    sysadmin_id: int
    manager_id: int      # administrador in Central, empleado in Norte
    clerk_id: int        # empleado in Central
    outsider_id: int     # no roles
    cash_id: int         # 0% commission
    card_id: int         # 2.95% commission
    product_type_id: int
    product_id: int      # Central, stock 5
    norte_product_id: int


async def _add_user(session: AsyncSession, name: str, email: str) -> User:
    user = User(
        name=name,
        surname="Tester",
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
    )
    session.add(user)
    await session.flush()
    return user


@pytest_asyncio.fixture
async def seed() -> SeedData:
    """Committed reference data shared by service and API tests."""
    async with async_session() as session:
        admin_role = Role(name=ROLE_ADMIN)
        employee_role = Role(name=ROLE_EMPLOYEE)
        central = Warehouse(name="Central", address="Av. Principal 100")
        norte = Warehouse(name="Norte", address=None)
        sur = Warehouse(name="Sur", address="Calle 5")
        session.add_all([admin_role, employee_role, central, norte, sur])
        await session.flush()

        sysadmin = await _add_user(session, "Sys", "sysadmin@example.com")
        manager = await _add_user(session, "Manager", "manager@example.com")
        clerk = await _add_user(session, "Clerk", "clerk@example.com")
        outsider = await _add_user(session, "Outsider", "outsider@example.com")

        session.add(SystemAdministrator(user_id=sysadmin.id))
        session.add_all([
            UserRoleWarehouse(user_id=manager.id, warehouse_id=central.id, role_id=admin_role.id),
            UserRoleWarehouse(user_id=manager.id, warehouse_id=norte.id, role_id=employee_role.id),
            UserRoleWarehouse(user_id=clerk.id, warehouse_id=central.id, role_id=employee_role.id),
        ])

        cash = SaleType(name="Efectivo", commission=Decimal("0.00"))
        card = SaleType(name="Tarjeta", commission=Decimal("2.95"))
        product_type = ProductType(name="Bebidas")
        session.add_all([cash, card, product_type])
        await session.flush()

        product = Product(
            name="Agua 500ml", product_type_id=product_type.id,
            stock=5, min_stock=1, warehouse_id=central.id,
        )
        norte_product = Product(
            name="Jugo 1L", product_type_id=product_type.id,
            stock=10, min_stock=2, warehouse_id=norte.id,
        )
        session.add_all([product, norte_product])
        await session.flush()

        data = SeedData(
            admin_role_id=admin_role.id,
            employee_role_id=employee_role.id,
            central_id=central.id,
            norte_id=norte.id,
            sur_id=sur.id,
            sysadmin_id=sysadmin.id,
            manager_id=manager.id,
            clerk_id=clerk.id,
            outsider_id=outsider.id,
            cash_id=cash.id,
            card_id=card.id,
            product_type_id=product_type.id,
            product_id=product.id,
            norte_product_id=norte_product.id,
        )
        await session.commit()
    return data


def token_for(user_id: int, email: str = "user@example.com") -> str:
    return create_access_token(user_id=user_id, email=email, name="Test", surname="Tester")


def auth_headers(user_id: int) -> dict:
    return {"Authorization": f"Bearer {token_for(user_id)}"}


@pytest.fixture
def headers(seed: SeedData) -> dict[str, dict]:
    """Authorization headers keyed by seeded user."""
    return {
        "sysadmin": auth_headers(seed.sysadmin_id),
        "manager": auth_headers(seed.manager_id),
        "clerk": auth_headers(seed.clerk_id),
        "outsider": auth_headers(seed.outsider_id),
    }


@pytest.fixture
def make_token():
    return token_for
