from __future__ import annotations
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

class PlayerCreate(BaseModel):
    name: str = Field(default="anon", max_length=80)

class PlayerPublic(BaseModel):
    id: UUID
    name: str
    created_at: datetime

class PlayerToken(BaseModel):
    player: PlayerPublic
    access: str
