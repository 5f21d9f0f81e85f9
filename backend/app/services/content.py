from __future__ import annotations
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.pack import Pack, Prompt


async def list_packs(session: AsyncSession) -> list[Pack]:
    return list((await session.execute(select(Pack).order_by(Pack.name))).scalars().all())


async def get_pack(session: AsyncSession, slug: str) -> Pack | None:
    return await session.get(Pack, slug)


async def list_prompts(session: AsyncSession, pack: str) -> list[Prompt]:
    """Prompts are read live by pack, so pack edits reach hunts already in progress."""
    q = select(Prompt).where(Prompt.pack == pack).order_by(Prompt.id)
    return list((await session.execute(q)).scalars().all())
