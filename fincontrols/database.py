from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
import structlog

from fincontrols.config import settings
from fincontrols.ids import parse_uuid

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


def _get_db_url() -> str:
    """asyncpg takes SSL through connect_args, not a sslmode query parameter."""
    url = settings.DATABASE_URL
    return url.replace("?sslmode=require", "").replace("&sslmode=require", "")


engine: AsyncEngine = create_async_engine(
    _get_db_url(),
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=30,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
    echo=settings.DEBUG,
    connect_args={"ssl": "require"} if settings.DB_SSL_REQUIRED else {},
)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db():
    """One request, one unit of work: commit on success, roll back on any error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def set_tenant_context(session: AsyncSession, tenant_id) -> None:
    """Scope row-level security to one company for the session's current transaction.

    Every session that touches tenant tables must call this first, request
    sessions and background sessions alike; without it the tenant_isolation
    policies match no rows and reject every insert.
    """
    tenant_uuid = parse_uuid(tenant_id, "tenant_id")
    # set_config(..., true) is SET LOCAL: it ends with the transaction
    await session.execute(
        text("SELECT set_config('app.current_tenant_id', :tid, true)"),
        {"tid": str(tenant_uuid)},
    )


async def init_db():
    # Fail at startup, not on the first date check, if the clock zone is unknown
    ZoneInfo(settings.REFERENCE_TIMEZONE)
    async with engine.begin() as conn:
        version = (await conn.execute(text("SHOW server_version"))).scalar()
        logger.info(
            "db_connected",
            server_version=version,
            reference_timezone=settings.REFERENCE_TIMEZONE,
        )


async def close_db():
    await engine.dispose()
    logger.info("db_disconnected")
