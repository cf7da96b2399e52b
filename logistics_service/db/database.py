"""
Logistics Service — Database engine and session lifecycle

The Database object is built explicitly in the application lifespan and shared
through app.state; nothing here is a module-level connection singleton.
"""
import logging
from pathlib import Path
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo, pool_pre_ping=True)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)

    async def init(self, reference_data_path: Path | None = None) -> None:
        """Create tables (Alembic handles migrations in production) and seed reference data."""
        from logistics_service.models import inventory, reference, supply  # noqa: F401  (register tables)
        from logistics_service.db.reference_data import seed_reference_data

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        if reference_data_path is not None:
            async with self.sessionmaker() as session:
                await seed_reference_data(session, reference_data_path)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, closed afterwards."""
    database: Database = request.app.state.db
    async with database.sessionmaker() as session:
        yield session
