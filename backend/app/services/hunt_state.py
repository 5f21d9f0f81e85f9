from __future__ import annotations
from typing import Iterable
from uuid import UUID
import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.hunt import Hunt, HuntPlayer
from app.models.submission import Submission
from app.schemas.hunt import HuntStatus
from app.services.errors import HuntNotActive, HuntNotFound, IllegalTransition
from app.services.notifier import notify

log = structlog.get_logger()

# Forward edges only; X -> X is always a no-op at the target.
TRANSITIONS: dict[HuntStatus, frozenset[HuntStatus]] = {
    HuntStatus.LOBBY: frozenset({HuntStatus.ACTIVE}),
    HuntStatus.ACTIVE: frozenset({HuntStatus.VOTING, HuntStatus.FINISHED}),
    HuntStatus.VOTING: frozenset({HuntStatus.FINISHED}),
    HuntStatus.FINISHED: frozenset(),
}

# Edges a client may ask for directly. ACTIVE -> VOTING|FINISHED is only ever
# derived from the membership snapshot (see close_activity_if_complete).
REQUESTABLE: dict[HuntStatus, HuntStatus] = {
    HuntStatus.ACTIVE: HuntStatus.LOBBY,
    HuntStatus.FINISHED: HuntStatus.VOTING,
}


def is_legal(current: HuntStatus, target: HuntStatus) -> bool:
    return target == current or target in TRANSITIONS[current]


def status_after_activity(submissions: Iterable[Submission]) -> HuntStatus:
    """
    Voting only makes sense when some prompt has photos from two or more
    distinct players; otherwise the hunt goes straight to finished.
    """
    players_by_prompt: dict[UUID, set[UUID]] = {}
    for s in submissions:
        if not s.photo_path:
            continue
        players_by_prompt.setdefault(s.prompt_id, set()).add(s.player_id)
    contested = any(len(players) >= 2 for players in players_by_prompt.values())
    return HuntStatus.VOTING if contested else HuntStatus.FINISHED


async def load_hunt(session: AsyncSession, hunt_id: UUID) -> Hunt:
    hunt = await session.get(Hunt, hunt_id)
    if not hunt:
        raise HuntNotFound("Hunt not found")
    return hunt


def require_active(hunt: Hunt) -> None:
    """Capturing photos and finishing only happen while the hunt is running."""
    if HuntStatus(hunt.status) != HuntStatus.ACTIVE:
        raise HuntNotActive(f"Hunt is not running (status={hunt.status})")


async def _write_status(session: AsyncSession, notifier, hunt: Hunt, source: HuntStatus, target: HuntStatus) -> HuntStatus:
    """
    Guarded write: only moves from `source`, so a stale writer
    can never pull the hunt backwards. Losing the race is not an error.
    """
    if not is_legal(source, target):
        raise IllegalTransition(f"Cannot move hunt from {source.value} to {target.value}")
    res = await session.execute(
        update(Hunt)
        .where(Hunt.id == hunt.id, Hunt.status == source.value)
        .values(status=target.value)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    await session.refresh(hunt)
    current = HuntStatus(hunt.status)
    if res.rowcount:
        log.info("hunt_transition", hunt_id=str(hunt.id), to=target.value)
        await notify(notifier, "hunts", "UPDATE", hunt)
    elif current != target:
        log.info("hunt_transition_lost", hunt_id=str(hunt.id), wanted=target.value, current=current.value)
    return current


async def request_transition(session: AsyncSession, notifier, hunt_id: UUID, target: HuntStatus) -> HuntStatus:
    """
    Client-initiated transitions: start (lobby -> active) and voting complete
    (voting -> finished). Repeating a transition that already happened is a no-op.
    """
    hunt = await load_hunt(session, hunt_id)
    current = HuntStatus(hunt.status)
    if current == target:
        return current
    source = REQUESTABLE.get(target)
    if source is None or current != source:
        raise IllegalTransition(f"Cannot move hunt from {current.value} to {target.value}")
    return await _write_status(session, notifier, hunt, source, target)


async def start_hunt(session: AsyncSession, notifier, hunt_id: UUID) -> HuntStatus:
    # Any member may start; an empty roster is allowed
    return await request_transition(session, notifier, hunt_id, HuntStatus.ACTIVE)


async def finish_voting(session: AsyncSession, notifier, hunt_id: UUID) -> HuntStatus:
    return await request_transition(session, notifier, hunt_id, HuntStatus.FINISHED)


async def close_activity_if_complete(session: AsyncSession, notifier, hunt: Hunt) -> tuple[HuntStatus, bool]:
    """
    Check-then-act run by the request that just marked a player finished.
    Everything is re-read from the ledgers, so concurrent or repeated calls
    converge on the same target. Returns (status, all_finished).
    """
    members = (await session.execute(
        select(HuntPlayer.finished_at).where(HuntPlayer.hunt_id == hunt.id)
    )).scalars().all()
    all_finished = bool(members) and all(f is not None for f in members)

    await session.refresh(hunt)
    current = HuntStatus(hunt.status)
    if not all_finished or current != HuntStatus.ACTIVE:
        return current, all_finished

    subs = (await session.execute(
        select(Submission).where(Submission.hunt_id == hunt.id)
    )).scalars().all()
    target = status_after_activity(subs)
    if target == HuntStatus.FINISHED:
        log.info("voting_skipped", hunt_id=str(hunt.id), reason="no_contested_prompts")
    return await _write_status(session, notifier, hunt, HuntStatus.ACTIVE, target), True
