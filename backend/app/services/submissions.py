from __future__ import annotations
import uuid
from uuid import UUID
import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.hunt import Hunt
from app.models.pack import Prompt
from app.models.submission import Submission
from app.schemas.submission import SubmissionState
from app.services.errors import (
    BlobWriteFailed, InvalidImage, InvalidPrompt, NotYourSubmission, PhotoAlreadyAttached, SubmissionNotFound,
)
from app.services.hunt_state import load_hunt, require_active
from app.services.media import analyze_image, ext_for_mime
from app.services.membership import require_membership
from app.services.storage import STORE_ERRORS, BlobStore

log = structlog.get_logger()


def submission_state(s: Submission) -> SubmissionState:
    return SubmissionState.SAVED if s.photo_path else SubmissionState.NEEDS_PHOTO


async def find_submission(session: AsyncSession, hunt_id: UUID, player_id: UUID, prompt_id: UUID) -> Submission | None:
    return await session.scalar(
        select(Submission).where(
            Submission.hunt_id == hunt_id,
            Submission.player_id == player_id,
            Submission.prompt_id == prompt_id,
        )
    )


async def _check_prompt(session: AsyncSession, hunt: Hunt, prompt_id: UUID) -> Prompt:
    prompt = await session.get(Prompt, prompt_id)
    if not prompt or prompt.pack != hunt.pack:
        raise InvalidPrompt("Prompt does not belong to this hunt's pack")
    return prompt


async def ensure_submission(session: AsyncSession, hunt_id: UUID, player_id: UUID, prompt_id: UUID) -> Submission:
    """
    Return the player's submission for this prompt, creating an intent row
    (no photo yet) the first time. Safe to call repeatedly.
    """
    hunt = await load_hunt(session, hunt_id)
    await require_membership(session, hunt_id, player_id)
    require_active(hunt)
    await _check_prompt(session, hunt, prompt_id)

    existing = await find_submission(session, hunt_id, player_id, prompt_id)
    if existing:
        return existing

    sub = Submission(hunt_id=hunt_id, player_id=player_id, prompt_id=prompt_id, photo_path=None)
    session.add(sub)
    try:
        await session.commit()
    except IntegrityError:
        # Lost the look-before-insert race; the other insert is the submission
        await session.rollback()
        existing = await find_submission(session, hunt_id, player_id, prompt_id)
        if existing:
            return existing
        raise
    await session.refresh(sub)
    log.info("submission_created", hunt_id=str(hunt_id), prompt_id=str(prompt_id), submission_id=str(sub.id))
    return sub


async def attach_photo(
    session: AsyncSession,
    store: BlobStore,
    submission_id: UUID,
    player_id: UUID,
    data: bytes,
) -> Submission:
    """
    Write the photo to the blob store, then record its path. If the write
    fails the submission stays an intent and the row is left untouched.
    """
    sub = await session.get(Submission, submission_id)
    if not sub:
        raise SubmissionNotFound("Submission not found")
    if sub.player_id != player_id:
        raise NotYourSubmission("You can only add photos to your own submissions")
    if sub.photo_path:
        raise PhotoAlreadyAttached("This submission already has a photo")
    require_active(await load_hunt(session, sub.hunt_id))

    try:
        mime = analyze_image(data)
    except ValueError as e:
        raise InvalidImage(f"Invalid image: {e}")

    path = f"{sub.hunt_id}/{sub.player_id}/{sub.prompt_id}/{uuid.uuid4().hex}.{ext_for_mime(mime)}"
    try:
        store.put(path, data, mime)
    except (*STORE_ERRORS, OSError) as e:
        log.warning("photo_upload_failed", submission_id=str(sub.id), error=str(e))
        raise BlobWriteFailed("Photo upload failed; try again")

    # photo_path is set exactly once
    res = await session.execute(
        update(Submission)
        .where(Submission.id == sub.id, Submission.photo_path.is_(None))
        .values(photo_path=path)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    await session.refresh(sub)
    if not res.rowcount:
        raise PhotoAlreadyAttached("This submission already has a photo")
    log.info("photo_attached", submission_id=str(sub.id), path=path)
    return sub


async def list_for_player(session: AsyncSession, hunt_id: UUID, player_id: UUID) -> list[Submission]:
    q = (
        select(Submission)
        .where(Submission.hunt_id == hunt_id, Submission.player_id == player_id)
        .order_by(Submission.created_at.asc(), Submission.id)
    )
    return list((await session.execute(q)).scalars().all())


async def list_for_hunt(session: AsyncSession, hunt_id: UUID, with_photo_only: bool = False) -> list[Submission]:
    q = select(Submission).where(Submission.hunt_id == hunt_id)
    if with_photo_only:
        q = q.where(Submission.photo_path.is_not(None))
    q = q.order_by(Submission.created_at.asc(), Submission.id)
    return list((await session.execute(q)).scalars().all())
