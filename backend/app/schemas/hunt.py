from __future__ import annotations
from enum import Enum
from pydantic import BaseModel, Field, model_validator
from uuid import UUID
from datetime import datetime


class HuntStatus(str, Enum):
    LOBBY = "lobby"
    ACTIVE = "active"
    VOTING = "voting"
    FINISHED = "finished"


class CompletionMode(str, Enum):
    ANYTIME = "anytime"
    ALL_REQUIRED = "all_required"


class Role(str, Enum):
    HOST = "host"
    PLAYER = "player"


class HuntCreate(BaseModel):
    pack: str = Field(min_length=1, max_length=64)
    completion_mode: CompletionMode = CompletionMode.ANYTIME
    required_prompt_count: int | None = Field(default=None, ge=1)
    display_name: str | None = Field(default=None, max_length=80)

    @model_validator(mode="after")
    def required_count_only_when_required(self):
        if self.completion_mode == CompletionMode.ANYTIME and self.required_prompt_count is not None:
            raise ValueError("required_prompt_count only applies to completion_mode=all_required")
        return self


class JoinRequest(BaseModel):
    display_name: str | None = Field(default=None, max_length=80)


class DisplayNameUpdate(BaseModel):
    display_name: str = Field(default="", max_length=80)


class TransitionRequest(BaseModel):
    target: HuntStatus


class HuntPublic(BaseModel):
    id: UUID
    code: str
    pack: str
    completion_mode: CompletionMode
    required_prompt_count: int | None
    status: HuntStatus
    created_at: datetime
    player_count: int = 0
    finished_count: int = 0
    is_host: bool = False
    is_member: bool = False


class HuntPlayerPublic(BaseModel):
    id: UUID
    hunt_id: UUID
    player_id: UUID
    display_name: str
    role: Role
    joined_at: datetime
    finished_at: datetime | None = None


class PlayerGame(BaseModel):
    hunt_id: UUID
    hunt_code: str
    hunt_status: HuntStatus
    pack: str
    joined_at: datetime
    finished_at: datetime | None = None
    role: Role


class FinishResult(BaseModel):
    player: HuntPlayerPublic
    status: HuntStatus
    all_finished: bool


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()
