from __future__ import annotations
import asyncio
from uuid import UUID
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession
import jwt
import structlog
from app.db import SessionLocal, get_session
from app.auth_deps import get_current_player
from app.models.hunt import Hunt, HuntPlayer
from app.models.player import Player
from app.schemas.hunt import (
    DisplayNameUpdate, FinishResult, HuntCreate, HuntPlayerPublic, HuntPublic, HuntStatus,
    JoinRequest, PlayerGame, Role, TransitionRequest, normalize_code,
)
from app.schemas.pack import PromptPublic
from app.schemas.results import Results
from app.security import decode_token
from app.services import content, hunt_state, membership
from app.services.errors import ResultsNotReady
from app.services.notifier import SubscriptionClosed, get_notifier
from app.services.storage import BlobStore, get_blob_store, photo_url
from app.services.submissions import list_for_hunt
from app.services.tally import tally
from app.services.votes import votes_for_hunt

router = APIRouter(prefix="/hunts", tags=["hunts"])
log = structlog.get_logger()


def player_public(hp: HuntPlayer) -> HuntPlayerPublic:
    return HuntPlayerPublic(
        id=hp.id, hunt_id=hp.hunt_id, player_id=hp.player_id,
        display_name=hp.display_name, role=Role(hp.role),
        joined_at=hp.joined_at, finished_at=hp.finished_at,
    )


async def hydrate_public(session: AsyncSession, hunt: Hunt, player_id: UUID) -> HuntPublic:
    members = await membership.list_members(session, hunt.id)
    me = next((m for m in members if m.player_id == player_id), None)
    return HuntPublic(
        id=hunt.id, code=hunt.code, pack=hunt.pack,
        completion_mode=hunt.completion_mode,
        required_prompt_count=hunt.required_prompt_count,
        status=HuntStatus(hunt.status), created_at=hunt.created_at,
        player_count=len(members),
        finished_count=sum(1 for m in members if m.finished_at is not None),
        is_host=bool(me and me.role == Role.HOST.value),
        is_member=me is not None,
    )


@router.post("", response_model=HuntPublic, status_code=201)
async def create_hunt(
    payload: HuntCreate,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    notifier=Depends(get_notifier),
):
    hunt = await membership.create_hunt(session, notifier, player.id, payload)
    return await hydrate_public(session, hunt, player.id)


@router.get("/mine", response_model=list[PlayerGame])
async def list_my_hunts(session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    return [
        PlayerGame(
            hunt_id=h.id, hunt_code=h.code, hunt_status=HuntStatus(h.status), pack=h.pack,
            joined_at=hp.joined_at, finished_at=hp.finished_at, role=Role(hp.role),
        )
        for (hp, h) in await membership.player_games(session, player.id)
    ]


@router.post("/{code}/join", response_model=HuntPlayerPublic, status_code=201)
async def join_by_code(
    code: str,
    response: Response,
    body: JoinRequest | None = Body(default=None),
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    notifier=Depends(get_notifier),
):
    code = normalize_code(code)
    if not code:
        raise HTTPException(status_code=400, detail="Join code is required")
    hunt = await membership.find_by_code(session, code)
    hp, created = await membership.join(session, notifier, hunt.id, player.id, body.display_name if body else None)
    if not created:
        response.status_code = 200
    return player_public(hp)


@router.get("/{hunt_id}", response_model=HuntPublic)
async def get_hunt(hunt_id: UUID, session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    hunt = await hunt_state.load_hunt(session, hunt_id)
    return await hydrate_public(session, hunt, player.id)


@router.get("/{hunt_id}/players", response_model=list[HuntPlayerPublic])
async def list_players(hunt_id: UUID, session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    await hunt_state.load_hunt(session, hunt_id)
    return [player_public(hp) for hp in await membership.list_members(session, hunt_id)]


@router.get("/{hunt_id}/prompts", response_model=list[PromptPublic])
async def list_hunt_prompts(hunt_id: UUID, session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    # Unshuffled; each device shuffles once on first load
    hunt = await hunt_state.load_hunt(session, hunt_id)
    return [PromptPublic.model_validate(p) for p in await content.list_prompts(session, hunt.pack)]


@router.patch("/{hunt_id}/me", response_model=HuntPlayerPublic)
async def update_display_name(
    hunt_id: UUID,
    payload: DisplayNameUpdate,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    notifier=Depends(get_notifier),
):
    return player_public(await membership.set_display_name(session, notifier, hunt_id, player.id, payload.display_name))


@router.delete("/{hunt_id}/me", status_code=204)
async def leave_hunt(
    hunt_id: UUID,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    notifier=Depends(get_notifier),
):
    await membership.leave(session, notifier, hunt_id, player.id)


@router.post("/{hunt_id}/start", response_model=HuntPublic)
async def start_hunt(
    hunt_id: UUID,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    notifier=Depends(get_notifier),
):
    # Not host-restricted: any member may start
    await membership.require_membership(session, hunt_id, player.id)
    await hunt_state.start_hunt(session, notifier, hunt_id)
    hunt = await hunt_state.load_hunt(session, hunt_id)
    return await hydrate_public(session, hunt, player.id)


@router.post("/{hunt_id}/transition", response_model=HuntPublic)
async def transition(
    hunt_id: UUID,
    payload: TransitionRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    notifier=Depends(get_notifier),
):
    await membership.require_membership(session, hunt_id, player.id)
    await hunt_state.request_transition(session, notifier, hunt_id, payload.target)
    hunt = await hunt_state.load_hunt(session, hunt_id)
    return await hydrate_public(session, hunt, player.id)


@router.post("/{hunt_id}/finish", response_model=FinishResult)
async def finish(
    hunt_id: UUID,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    notifier=Depends(get_notifier),
):
    hp, status, all_finished = await membership.finish_player(session, notifier, hunt_id, player.id)
    return FinishResult(player=player_public(hp), status=status, all_finished=all_finished)


@router.delete("/{hunt_id}/finish", response_model=FinishResult)
async def undo_finish(
    hunt_id: UUID,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    notifier=Depends(get_notifier),
):
    hp, status = await membership.undo_finish(session, notifier, hunt_id, player.id)
    return FinishResult(player=player_public(hp), status=status, all_finished=False)


@router.get("/{hunt_id}/results", response_model=Results)
async def results(
    hunt_id: UUID,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
    store: BlobStore = Depends(get_blob_store),
):
    hunt = await hunt_state.load_hunt(session, hunt_id)
    if HuntStatus(hunt.status) != HuntStatus.FINISHED:
        raise ResultsNotReady(f"Results are available once the hunt is finished (status={hunt.status})")
    await membership.require_membership(session, hunt_id, player.id)

    subs = await list_for_hunt(session, hunt_id, with_photo_only=True)
    res = tally(
        await content.list_prompts(session, hunt.pack),
        subs,
        await membership.list_members(session, hunt_id),
        await votes_for_hunt(session, hunt_id),
    )
    paths = {s.id: s.photo_path for s in subs}
    for row in res.prompts:
        if row.winner is not None:
            row.winner.photo_url = await photo_url(store, paths.get(row.winner.submission_id), tries=1)
    return res


async def _event_subscriber(token: str, hunt_id: UUID) -> UUID | None:
    """Same gate as the HTTP routes: a player token belonging to a member of the hunt."""
    try:
        data = decode_token(token)
        player_id = UUID(str(data.get("sub")))
    except (jwt.PyJWTError, ValueError):
        return None
    if data.get("type") != "player":
        return None
    async with SessionLocal() as session:
        if not await membership.get_membership(session, hunt_id, player_id):
            return None
    return player_id


async def _until_disconnect(websocket: WebSocket) -> None:
    # Inbound frames carry nothing; they are read only to notice the close
    while True:
        msg = await websocket.receive()
        if msg["type"] == "websocket.disconnect":
            return


@router.websocket("/{hunt_id}/events")
async def hunt_events(websocket: WebSocket, hunt_id: UUID, token: str = Query(...), notifier=Depends(get_notifier)):
    """
    Push `hunts` / `hunt_players` row changes for one hunt. Best-effort:
    clients re-read the hunt and roster whenever they (re)connect.
    """
    player_id = await _event_subscriber(token, hunt_id)
    if player_id is None:
        await websocket.close(code=1008)
        return
    structlog.contextvars.bind_contextvars(hunt_id=str(hunt_id), player_id=str(player_id))

    # Subscribed before the handshake completes, so nothing after it is missed
    async with notifier.subscribe(hunt_id) as sub:
        await websocket.accept()
        closed = asyncio.create_task(_until_disconnect(websocket))
        try:
            while True:
                nxt = asyncio.create_task(sub.get())
                done, _ = await asyncio.wait({nxt, closed}, return_when=asyncio.FIRST_COMPLETED)
                if closed in done:
                    nxt.cancel()
                    closed.result()
                    break
                try:
                    event = nxt.result()
                except SubscriptionClosed:
                    log.warning("events_feed_closed")
                    await websocket.close(code=1011)
                    break
                await websocket.send_json(event.model_dump())
        except WebSocketDisconnect:
            pass
        finally:
            closed.cancel()
    log.info("events_disconnected")
