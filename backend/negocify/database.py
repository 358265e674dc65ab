"""Database engine, session factory, and declarative base.

One DeclarativeBase for every table (users, roles, warehouses, products,
sales). Routes get a request-scoped session from `get_db()`; the whole
request runs inside that session's single transaction, which is committed
when the handler returns and rolled back if anything raises.
"""

from typing import AsyncIterator

from sqlalchemy import BigInteger, Integer
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from negocify.config import settings

# SQLite (tests, local dev) sizes its own pool
_pool_kwargs = (
    {} if settings.database_url.startswith("sqlite")
    else {"pool_size": 20, "max_overflow": 10}
)

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_pool_kwargs,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# BIGINT identity on Postgres; SQLite only autoincrements INTEGER primary keys
BigIntId = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a session whose transaction spans the whole request."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
