from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()

def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url)

def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)

async def init_models(engine: AsyncEngine):
    """Creates catalog tables if missing. No migrations; the catalog owner manages schema changes."""
    # Import so the table is registered on Base.metadata
    from iptv_proxy.modules.catalog import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
