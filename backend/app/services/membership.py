from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from uuid import UUID
import structlog
from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.models.hunt import Hunt, HuntPlayer
from app.models.pack import Prompt
from app.models.submission import Submission
from app.schemas.hunt import CompletionMode, HuntCreate, HuntStatus, Role
from app.services.content import get_pack
from app.services.errors import (
    CompletionRequirementNotMet, JoinCodeExhausted, NotAMember, UnknownPack, HuntNotFound,
)
from app.services.hunt_state import close_activity_if_complete, load_hunt, require_active
from app.services.invite_code import generate_code
from app.services.notifier import notify

log = structlog.get_logger()

ANONYMOUS = "Anonymous"


def clean_display_name(name: str | None) -> str:
    return (name or "").strip() or ANONYMOUS


async def get_membership(session: AsyncSession, hunt_id: UUID, player_id: UUID) -> HuntPlayer | None:
    return await session.scalar(
        select(HuntPlayer).where(HuntPlayer.hunt_id == hunt_id, HuntPlayer.player_id == player_id)
    )


async def require_membership(session: AsyncSession, hunt_id: UUID, player_id: UUID) -> HuntPlayer:
    hp = await get_membership(session, hunt_id, player_id)
    if not hp:
        raise NotAMember("You are not a player in this hunt")
    return hp


async def list_members(session: AsyncSession, hunt_id: UUID) -> list[HuntPlayer]:
    q = select(HuntPlayer).where(HuntPlayer.hunt_id == hunt_id).order_by(HuntPlayer.joined_at.asc(), HuntPlayer.id)
    return list((await session.execute(q)).scalars().all())


async def join(
    session: AsyncSession,
    notifier,
    hunt_id: UUID,
    player_id: UUID,
    display_name: str | None,
    role: Role = Role.PLAYER,
) -> tuple[HuntPlayer, bool]:
    """
    Insert-if-absent; returns (row, created). An existing row is returned
    as-is, so re-joining never downgrades a host or resets finished_at.
    """
    existing = await get_membership(session, hunt_id, player_id)
    if existing:
        return existing, False

    hp = HuntPlayer(
        hunt_id=hunt_id,
        player_id=player_id,
        display_name=clean_display_name(display_name),
        role=role.value,
    )
    session.add(hp)
    try:
        await session.commit()
    except IntegrityError:
        # Another request inserted the same (hunt, player) first
        await session.rollback()
        existing = await get_membership(session, hunt_id, player_id)
        if existing:
            return existing, False
        raise
    await session.refresh(hp)
    log.info("player_joined", hunt_id=str(hunt_id), role=hp.role)
    await notify(notifier, "hunt_players", "INSERT", hp)
    return hp, True


async def create_hunt(session: AsyncSession, notifier, player_id: UUID, payload: HuntCreate) -> Hunt:
    if not await get_pack(session, payload.pack):
        raise UnknownPack(f"Unknown pack '{payload.pack}'")

    # Generate a unique join code (retry on collision)
    for _ in range(settings.join_code_attempts):
        hunt = Hunt(
            code=generate_code(settings.join_code_length),
            pack=payload.pack,
            completion_mode=payload.completion_mode.value,
            required_prompt_count=payload.required_prompt_count,
            status=HuntStatus.LOBBY.value,
        )
        session.add(hunt)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            log.info("join_code_collision")
            continue
        await session.refresh(hunt)
        log.info("hunt_created", hunt_id=str(hunt.id), code=hunt.code, pack=hunt.pack)
        await notify(notifier, "hunts", "INSERT", hunt)
        await join(session, notifier, hunt.id, player_id, payload.display_name, role=Role.HOST)
        return hunt
    raise JoinCodeExhausted("Failed to generate unique join code")


async def find_by_code(session: AsyncSession, code: str) -> Hunt:
    hunt = await session.scalar(select(Hunt).where(Hunt.code == code))
    if not hunt:
        raise HuntNotFound("Invalid join code")
    return hunt


async def set_display_name(session: AsyncSession, notifier, hunt_id: UUID, player_id: UUID, name: str | None) -> HuntPlayer:
    hp = await require_membership(session, hunt_id, player_id)
    hp.display_name = clean_display_name(name)
    await session.commit()
    await session.refresh(hp)
    await notify(notifier, "hunt_players", "UPDATE", hp)
    return hp


async def mark_finished(session: AsyncSession, notifier, hunt_id: UUID, player_id: UUID, at: datetime | None) -> HuntPlayer:
    hp = await require_membership(session, hunt_id, player_id)
    hp.finished_at = at
    await session.commit()
    await session.refresh(hp)
    await notify(notifier, "hunt_players", "UPDATE", hp)
    return hp


async def photos_required(session: AsyncSession, hunt: Hunt) -> int:
    mode = CompletionMode(hunt.completion_mode)
    if mode == CompletionMode.ANYTIME:
        return 0
    if mode == CompletionMode.ALL_REQUIRED:
        total = await session.scalar(
            select(func.count()).select_from(Prompt).where(Prompt.pack == hunt.pack)
        ) or 0
        required = hunt.required_prompt_count or total
        return min(required, total)
    raise AssertionError(f"unhandled completion mode {mode}")


async def photos_taken(session: AsyncSession, hunt_id: UUID, player_id: UUID) -> int:
    return await session.scalar(
        select(func.count()).select_from(Submission).where(
            Submission.hunt_id == hunt_id,
            Submission.player_id == player_id,
            Submission.photo_path.is_not(None),
        )
    ) or 0


async def finish_player(session: AsyncSession, notifier, hunt_id: UUID, player_id: UUID) -> tuple[HuntPlayer, HuntStatus, bool]:
    """Mark the player done, then run the all-finished check for the hunt."""
    hunt = await load_hunt(session, hunt_id)
    await require_membership(session, hunt_id, player_id)
    require_active(hunt)
    required = await photos_required(session, hunt)
    if required:
        taken = await photos_taken(session, hunt_id, player_id)
        if taken < required:
            raise CompletionRequirementNotMet(f"{taken}/{required} photos taken; this hunt requires {required}")

    hp = await mark_finished(session, notifier, hunt_id, player_id, datetime.now(dt_tz.utc))
    status, all_finished = await close_activity_if_complete(session, notifier, hunt)
    return hp, status, all_finished


async def undo_finish(session: AsyncSession, notifier, hunt_id: UUID, player_id: UUID) -> tuple[HuntPlayer, HuntStatus]:
    """Clears finished_at. A hunt that already moved on is not rolled back."""
    hunt = await load_hunt(session, hunt_id)
    hp = await mark_finished(session, notifier, hunt_id, player_id, None)
    await session.refresh(hunt)
    return hp, HuntStatus(hunt.status)


async def leave(session: AsyncSession, notifier, hunt_id: UUID, player_id: UUID) -> None:
    hp = await require_membership(session, hunt_id, player_id)
    await session.execute(
        delete(HuntPlayer).where(HuntPlayer.id == hp.id).execution_options(synchronize_session=False)
    )
    await session.commit()
    log.info("player_left", hunt_id=str(hunt_id))
    await notify(notifier, "hunt_players", "DELETE", hp)


async def player_games(session: AsyncSession, player_id: UUID) -> list[tuple[HuntPlayer, Hunt]]:
    q = (
        select(HuntPlayer, Hunt)
        .join(Hunt, Hunt.id == HuntPlayer.hunt_id)
        .where(HuntPlayer.player_id == player_id)
        .order_by(HuntPlayer.joined_at.desc())
    )
    return [(hp, h) for (hp, h) in (await session.execute(q)).all()]
