from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from app.db import get_session
from app.auth_deps import get_current_player
from app.models.player import Player
from app.models.submission import Submission
from app.models.vote import Vote
from app.schemas.submission import EnsureSubmissionRequest, SubmissionPublic, VotingSubmission
from app.schemas.vote import VoteCreate, VotePublic
from app.services import membership, submissions, votes
from app.services.hunt_state import load_hunt
from app.services.errors import SubmissionNotFound
from app.services.storage import BlobStore, get_blob_store, photo_url

router = APIRouter(prefix="/hunts/{hunt_id}", tags=["submissions"])


async def _to_public(store: BlobStore, s: Submission, tries: int | None = None) -> SubmissionPublic:
    return SubmissionPublic(
        id=s.id,
        hunt_id=s.hunt_id,
        player_id=s.player_id,
        prompt_id=s.prompt_id,
        state=submissions.submission_state(s),
        created_at=s.created_at,
        photo_url=await photo_url(store, s.photo_path, tries=tries),
    )


def _vote_public(v: Vote) -> VotePublic:
    return VotePublic(id=v.id, submission_id=v.submission_id, player_id=v.player_id, category=v.category, created_at=v.created_at)


@router.post("/submissions", response_model=SubmissionPublic)
async def ensure_submission(
    hunt_id: UUID,
    payload: EnsureSubmissionRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    store: BlobStore = Depends(get_blob_store),
):
    """Get or create the player's submission for a prompt (before the photo exists)."""
    s = await submissions.ensure_submission(session, hunt_id, player.id, payload.prompt_id)
    return await _to_public(store, s)


@router.put("/submissions/{submission_id}/photo", response_model=SubmissionPublic)
async def upload_photo(
    hunt_id: UUID,
    submission_id: UUID,
    file: UploadFile = File(..., description="JPEG, PNG or WebP photo"),
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    store: BlobStore = Depends(get_blob_store),
):
    sub = await session.get(Submission, submission_id)
    if not sub or sub.hunt_id != hunt_id:
        raise SubmissionNotFound("Submission not found")
    data = await file.read()
    s = await submissions.attach_photo(session, store, submission_id, player.id, data)
    # Storage may lag right after the write; photo_url is null if it never shows up
    return await _to_public(store, s)


@router.get("/submissions/mine", response_model=list[SubmissionPublic])
async def my_submissions(
    hunt_id: UUID,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    store: BlobStore = Depends(get_blob_store),
):
    await load_hunt(session, hunt_id)
    await membership.require_membership(session, hunt_id, player.id)
    return [await _to_public(store, s) for s in await submissions.list_for_player(session, hunt_id, player.id)]


@router.get("/submissions", response_model=list[VotingSubmission])
async def hunt_submissions(
    hunt_id: UUID,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    store: BlobStore = Depends(get_blob_store),
):
    """Every photo in the hunt with its author's display name (the voting payload)."""
    await load_hunt(session, hunt_id)
    await membership.require_membership(session, hunt_id, player.id)
    names = {m.player_id: m.display_name for m in await membership.list_members(session, hunt_id)}
    return [
        VotingSubmission(
            id=s.id,
            prompt_id=s.prompt_id,
            player_id=s.player_id,
            display_name=names.get(s.player_id) or membership.ANONYMOUS,
            photo_url=await photo_url(store, s.photo_path, tries=1),
        )
        for s in await submissions.list_for_hunt(session, hunt_id, with_photo_only=True)
    ]


@router.post("/votes", response_model=VotePublic, status_code=201)
async def cast_vote(
    hunt_id: UUID,
    payload: VoteCreate,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    sub = await session.get(Submission, payload.submission_id)
    if not sub or sub.hunt_id != hunt_id:
        raise SubmissionNotFound("Submission not found")
    return _vote_public(await votes.cast_vote(session, payload.submission_id, player.id, payload.category))
