"""
Database configuration module using centralized settings.
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool
from core.config import settings
from core.logging import get_logger

logger = get_logger("database")

ASYNC_SQLALCHEMY_DATABASE_URL = settings.database_url

_url = make_url(ASYNC_SQLALCHEMY_DATABASE_URL)
logger.info(
    "Database configuration loaded",
    driver=_url.drivername, host=_url.host, port=_url.port, database=_url.database
)


def _engine_options(url) -> dict:
    """Pooling options; SQLite (tests and local runs) gets no connection pool."""
    if url.get_backend_name() == "sqlite":
        return {"poolclass": NullPool}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


async_engine = create_async_engine(
    ASYNC_SQLALCHEMY_DATABASE_URL,
    echo=settings.enable_sql_logging,
    **_engine_options(_url)
)

AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False
)

Base = declarative_base()


async def get_async_db():
    """FastAPI dependency yielding an async session; rolls back on error."""
    async with AsyncSessionLocal() as db:
        try:
            logger.debug("Async database session created")
            yield db
        except Exception as e:
            logger.error("Async database session error", error=str(e), exc_info=True)
            await db.rollback()
            raise
        finally:
            await db.close()
            logger.debug("Async database session closed")


async def create_all_tables():
    """Create the schema directly; used for local runs and tests instead of Alembic."""
    import models.models  # noqa: F401  registers the mappers

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
