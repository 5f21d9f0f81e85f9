from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any
import jwt
from app.config import settings

JWT_ALG = "HS256"

def make_player_token(player_id: str) -> str:
    """Anonymous bearer token: the device keeps it, the server trusts its `sub`."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": player_id,
        "type": "player",
        "iat": now.timestamp(),
        "exp": int((now + timedelta(days=settings.player_token_ttl_days)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALG)

def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])
