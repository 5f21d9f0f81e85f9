from __future__ import annotations
import uuid
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
import jwt
import structlog
from app.db import get_session
from app.security import decode_token
from app.models.player import Player

security = HTTPBearer()

async def get_current_player(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_session)
) -> Player:
    token = credentials.credentials
    try:
        data = decode_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if data.get("type") != "player":
        raise HTTPException(status_code=401, detail="Wrong token type")
    try:
        player_id = uuid.UUID(str(data.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject")
    player = await session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=401, detail="Player not found")
    structlog.contextvars.bind_contextvars(player_id=str(player.id))
    return player
