from __future__ import annotations
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

class VoteCreate(BaseModel):
    submission_id: UUID
    category: str = Field(default="best", min_length=1, max_length=32)

class VotePublic(BaseModel):
    id: UUID
    submission_id: UUID
    player_id: UUID
    category: str
    created_at: datetime
