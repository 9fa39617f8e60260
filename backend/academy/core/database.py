from typing import Any, AsyncGenerator, Dict, Optional
import uuid

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from academy.core.config import settings

Base = declarative_base()

# Built on first use so that tests can point DATABASE_URL elsewhere before import
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def generate_uuid() -> str:
    """Primary keys are stored as 36-char UUID strings on every backend"""
    return str(uuid.uuid4())


def async_database_url(url: Optional[str] = None) -> str:
    """Rewrite a plain postgres URL to the asyncpg driver"""
    url = url or settings.DATABASE_URL
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


def engine_options(url: str) -> Dict[str, Any]:
    """
    Pooling per backend:
    - SQLite (tests, local runs): NullPool, shared across threads
    - Postgres in dev mode: NullPool
    - Postgres in production: QueuePool with pre-ping and 30-minute recycling
    """
    options: Dict[str, Any] = {"echo": settings.DB_ECHO}
    if url.startswith("sqlite"):
        options.update(poolclass=NullPool, connect_args={"check_same_thread": False})
    elif settings.is_dev_mode():
        options.update(poolclass=NullPool)
    else:
        options.update(pool_size=10, max_overflow=20, pool_recycle=1800, pool_pre_ping=True)
    return options


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        url = async_database_url()
        _engine = create_async_engine(url, **engine_options(url))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. Endpoints commit their own unit of work;
    anything still pending when the handler returns is flushed here,
    and any error rolls the session back.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables"""
    import academy.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
