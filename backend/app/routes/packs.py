from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.db import get_session
from app.schemas.pack import PackPublic, PromptPublic
from app.services import content

router = APIRouter(prefix="/packs", tags=["packs"])

@router.get("", response_model=list[PackPublic])
async def list_packs(session: AsyncSession = Depends(get_session)):
    return [PackPublic.model_validate(p) for p in await content.list_packs(session)]

@router.get("/{slug}/prompts", response_model=list[PromptPublic])
async def list_prompts(slug: str, session: AsyncSession = Depends(get_session)):
    if not await content.get_pack(session, slug):
        raise HTTPException(status_code=404, detail="Pack not found")
    return [PromptPublic.model_validate(p) for p in await content.list_prompts(session, slug)]
