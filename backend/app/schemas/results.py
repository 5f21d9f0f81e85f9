from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID


class PromptWinner(BaseModel):
    submission_id: UUID
    player_id: UUID
    display_name: str
    votes: int
    photo_url: str | None = None


class PromptResult(BaseModel):
    prompt_id: UUID
    prompt_text: str | None = None
    winner: PromptWinner | None = None


class LeaderboardRow(BaseModel):
    player_id: UUID
    display_name: str
    total_votes: int


class Results(BaseModel):
    prompts: list[PromptResult]
    leaderboard: list[LeaderboardRow]
