from __future__ import annotations

import os
from collections.abc import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from wedding_planner.core.config import get_settings
from wedding_planner.db.base import Base


def ensure_sqlite_dir(url: str) -> None:
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite") or not parsed.database or parsed.database == ":memory:":
        return
    dir_path = os.path.dirname(parsed.database)
    if dir_path and not os.path.exists(dir_path):
        os.makedirs(dir_path, exist_ok=True)


def build_engine(database_url: str) -> AsyncEngine:
    if make_url(database_url).drivername.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)
    return create_async_engine(database_url, pool_pre_ping=True, echo=False)


_settings = get_settings()
engine: AsyncEngine = build_engine(_settings.database_url)

SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(bind: AsyncEngine | None = None) -> None:
    from wedding_planner import models  # noqa: F401

    target = bind or engine
    ensure_sqlite_dir(str(target.url))
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
