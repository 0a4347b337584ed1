import logging
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from modulehub.config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)

if not DATABASE_URL:
    raise ValueError("❌ DATABASE_URL is not set in the .env file")

# ---------------------------
# Engine
# ---------------------------
engine = create_async_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    future=True
)

# ---------------------------
# Session Local
# ---------------------------
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)

# ---------------------------
# Base model
# ---------------------------
Base = declarative_base()


# ---------------------------
# Dependency for FastAPI
# ---------------------------
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_models():
    """Create every table known to the metadata."""
    # Registers the mappers on Base.metadata
    import modulehub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_models():
    import modulehub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def check_database() -> bool:
    """
    Readiness probe: True when the database answers a trivial query.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database readiness check failed: {str(e)}")
        return False


def get_database_checker():
    """
    Dependency returning the readiness probe used by /health.
    Overridden in tests through app.dependency_overrides.
    """
    return check_database
