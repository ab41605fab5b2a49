import logging

from sqlalchemy import BigInteger, Integer
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings

logger = logging.getLogger(__name__)

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigIntegerPK = BigInteger().with_variant(Integer, "sqlite")

db_engine = create_async_engine(settings.database_url, echo=settings.database_echo)


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """Create all tables registered on the declarative base."""
    # Every model module must be imported before create_all
    from database.models import (  # noqa: F401
        applications,
        candidates,
        communications,
        interviews,
        jobs,
        users,
    )

    logger.info("Initialising database schema")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()


def enum_values(enum_cls) -> list[str]:
    """Persist enum values ("interview_scheduled") rather than member names."""
    return [member.value for member in enum_cls]
