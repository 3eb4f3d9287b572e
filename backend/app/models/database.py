"""Database configuration and session management."""

import os

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./crypto_radar.db")

engine = create_async_engine(DATABASE_URL, echo=False)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


def create_session_maker(url: str):
    """Build a dedicated engine and session factory for a database URL."""
    db_engine = create_async_engine(url, echo=False)
    return db_engine, async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(db_engine=None):
    """Initialize the database, creating all tables."""
    async with (db_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
