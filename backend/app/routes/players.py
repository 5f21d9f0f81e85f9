from __future__ import annotations
from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.db import get_session
from app.auth_deps import get_current_player
from app.models.player import Player
from app.schemas.auth import PlayerCreate, PlayerPublic, PlayerToken
from app.security import make_player_token

router = APIRouter(prefix="/players", tags=["players"])
log = structlog.get_logger()

def _pub(p: Player) -> PlayerPublic:
    return PlayerPublic(id=p.id, name=p.name, created_at=p.created_at)

@router.post("", status_code=201, response_model=PlayerToken)
async def create_player(payload: PlayerCreate | None = Body(default=None), session: AsyncSession = Depends(get_session)):
    """Anonymous device identity: called once on first launch, the client keeps the token."""
    player = Player(name=(payload.name.strip() if payload else "") or "anon")
    session.add(player)
    await session.commit()
    await session.refresh(player)
    log.info("player_created", player_id=str(player.id))
    return PlayerToken(player=_pub(player), access=make_player_token(str(player.id)))

@router.get("/me", response_model=PlayerPublic)
async def me(player: Player = Depends(get_current_player)):
    return _pub(player)
