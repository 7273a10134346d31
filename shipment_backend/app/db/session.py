"""
Database session configuration.

The `Datastore` owns the async engine and session factory. The application
builds one at startup, keeps it on `app.state.datastore` and disposes of it
at shutdown; request handlers get sessions through `get_db`.
"""

from typing import Any, AsyncIterator
from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from shipment_backend.app.core.config import settings

# Create declarative base for models
Base = declarative_base()


class Datastore:
    """Explicitly constructed handle on the relational database."""
    
    def __init__(self, database_url: str, echo: bool = False, **engine_options: Any):
        url = make_url(database_url)
        if not url.get_backend_name().startswith("sqlite") and "poolclass" not in engine_options:
            engine_options.setdefault("pool_size", settings.db_pool_size)
            engine_options.setdefault("max_overflow", settings.db_max_overflow)
        
        self.engine = create_async_engine(database_url, echo=echo, **engine_options)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    
    @classmethod
    def from_settings(cls) -> "Datastore":
        return cls(settings.database_url, echo=settings.db_echo)
    
    def session(self) -> AsyncSession:
        return self.session_factory()
    
    async def create_all(self) -> None:
        """Create any missing tables for every registered model."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    
    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    
    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency for database sessions.
    
    Yields an async session from the application's datastore and ensures
    it's properly closed.
    """
    datastore: Datastore = request.app.state.datastore
    async with datastore.session() as session:
        try:
            yield session
        finally:
            await session.close()
