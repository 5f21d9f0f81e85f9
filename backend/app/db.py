from __future__ import annotations
from typing import AsyncGenerator
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from app.config import settings

class Base(DeclarativeBase):
    pass

def _engine_kwargs(url: str) -> dict:
    # sqlite connections are bound to the loop that opened them
    if url.startswith("sqlite"):
        return {"poolclass": pool.NullPool}
    return {}

engine = create_async_engine(settings.database_url, future=True, echo=False, **_engine_kwargs(settings.database_url))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
