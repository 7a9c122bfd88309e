"""
Async SQLAlchemy engine and sessions.

DATABASE_URL may be postgresql://, postgresql+asyncpg:// or sqlite+aiosqlite://.
Repositories commit their own writes; a request session only rolls back on error.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


_engine = None
_session_factory = None


def async_url(url: str) -> str:
    """Pin PostgreSQL URLs to the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


def engine_options(url: str, echo: bool = False) -> dict:
    options = {"echo": echo}
    if not url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=10, pool_pre_ping=True)
    return options


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        url = async_url(settings.database_url)
        _engine = create_async_engine(url, **engine_options(url, settings.debug))
        logger.info("Database engine created (%s)", url.split(":", 1)[0])
    return _engine


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = session_factory(get_engine())
    return _session_factory


async def get_db() -> AsyncSession:
    """FastAPI dependency: one session per request."""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine = None) -> None:
    """Create missing tables and seed default prompts. Called on startup."""
    from ..models import document, profile, prompt  # noqa: F401  (register tables)
    from ..prompts.defaults import seed_default_prompts

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory(engine)() as session:
        added = await seed_default_prompts(session)
        await session.commit()
    logger.info("Database ready (%d prompts seeded)", added)


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine disposed")
