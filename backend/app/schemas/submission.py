from __future__ import annotations
from enum import Enum
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime


class SubmissionState(str, Enum):
    NEEDS_PHOTO = "needs_photo"  # intent row, no photo yet
    SAVED = "saved"


class EnsureSubmissionRequest(BaseModel):
    prompt_id: UUID


class SubmissionPublic(BaseModel):
    id: UUID
    hunt_id: UUID
    player_id: UUID
    prompt_id: UUID
    state: SubmissionState
    created_at: datetime
    # signed URL only; storage paths stay server-side
    photo_url: str | None = None


class VotingSubmission(BaseModel):
    id: UUID
    prompt_id: UUID
    player_id: UUID
    display_name: str
    photo_url: str | None = None
