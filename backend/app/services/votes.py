from __future__ import annotations
from uuid import UUID
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.submission import Submission
from app.models.vote import Vote
from app.schemas.hunt import HuntStatus
from app.services.errors import DuplicateVote, SubmissionNotFound, VotingClosed
from app.services.hunt_state import load_hunt
from app.services.membership import require_membership

log = structlog.get_logger()


async def existing_vote_for_prompt(session: AsyncSession, hunt_id: UUID, prompt_id: UUID, player_id: UUID) -> Vote | None:
    return await session.scalar(
        select(Vote)
        .join(Submission, Submission.id == Vote.submission_id)
        .where(
            Submission.hunt_id == hunt_id,
            Submission.prompt_id == prompt_id,
            Vote.player_id == player_id,
        )
        .limit(1)
    )


async def cast_vote(session: AsyncSession, submission_id: UUID, player_id: UUID, category: str = "best") -> Vote:
    """
    Append a vote. One vote per (player, prompt), checked before insert;
    two simultaneous votes from the same player can still both land.
    """
    sub = await session.get(Submission, submission_id)
    if not sub or not sub.photo_path:
        raise SubmissionNotFound("Submission not found")
    hunt = await load_hunt(session, sub.hunt_id)
    if HuntStatus(hunt.status) != HuntStatus.VOTING:
        raise VotingClosed(f"Voting is not open (status={hunt.status})")
    await require_membership(session, hunt.id, player_id)

    if await existing_vote_for_prompt(session, hunt.id, sub.prompt_id, player_id):
        raise DuplicateVote("You already voted on this prompt")

    vote = Vote(submission_id=sub.id, player_id=player_id, category=category)
    session.add(vote)
    await session.commit()
    await session.refresh(vote)
    log.info("vote_cast", hunt_id=str(hunt.id), prompt_id=str(sub.prompt_id), submission_id=str(sub.id))
    return vote


async def votes_for_hunt(session: AsyncSession, hunt_id: UUID) -> list[Vote]:
    q = (
        select(Vote)
        .join(Submission, Submission.id == Vote.submission_id)
        .where(Submission.hunt_id == hunt_id)
        .order_by(Vote.created_at.asc(), Vote.id)
    )
    return list((await session.execute(q)).scalars().all())
