import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


class Base(DeclarativeBase):
    pass


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating the pool on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        options = {"echo": False, "future": True, "pool_pre_ping": True}
        if not settings.database_url.startswith("sqlite"):
            options.update(
                pool_recycle=3600,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
            )
        _engine = create_async_engine(settings.database_url, **options)
        logger.info(f"Database engine created for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False, class_=AsyncSession)
    return _session_factory


async def create_tables() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close every pooled connection; the next get_engine() call starts over."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


async def get_session() -> AsyncSession:
    async with get_session_factory()() as session:
        yield session
