from collections.abc import AsyncGenerator

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from brand_monitor.core.config import settings


def make_engine(url: str | None = None) -> AsyncEngine:
    url = url or settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(url, echo=False, pool_size=5, max_overflow=5, pool_pre_ping=True)


engine = make_engine()
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def dialect_insert(db: AsyncSession, model):
    """Return an ``insert()`` that supports ``on_conflict_do_update`` for the session's backend."""
    if db.bind.dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


async def create_tables(bind: AsyncEngine | None = None) -> None:
    from brand_monitor.db.base import Base
    import brand_monitor.models  # noqa: F401  (registers tables on Base.metadata)

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
