from __future__ import annotations
import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Literal
from uuid import UUID
import structlog
from pydantic import BaseModel
from redis import asyncio as aioredis
from app.config import settings

log = structlog.get_logger()

Table = Literal["hunts", "hunt_players"]
EventType = Literal["INSERT", "UPDATE", "DELETE"]


class ChangeEvent(BaseModel):
    table: Table
    event_type: EventType
    new_row: dict[str, Any]


class SubscriptionClosed(Exception):
    """The feed behind a subscription stopped; reconnect and re-read."""


# Queued by a feed that died, so a waiting reader wakes up
_CLOSED = object()


class Subscription:
    """Events for one hunt, in publish order. Delivery is best-effort."""

    def __init__(self, queue: asyncio.Queue):
        self._queue = queue

    async def get(self, timeout: float | None = None) -> ChangeEvent:
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED:
            raise SubscriptionClosed()
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration


class LocalChangeNotifier:
    """In-process fan-out; enough for a single API worker."""

    def __init__(self, max_queue: int = 256):
        self._subs: dict[str, set[asyncio.Queue]] = {}
        self._max_queue = max_queue

    async def publish(self, hunt_id: UUID | str, event: ChangeEvent) -> None:
        for q in list(self._subs.get(str(hunt_id), ())):
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                # Slow consumer: it re-reads on reconnect
                log.warning("notifier_drop", hunt_id=str(hunt_id), table=event.table)

    @asynccontextmanager
    async def subscribe(self, hunt_id: UUID | str) -> AsyncIterator[Subscription]:
        key = str(hunt_id)
        q: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue)
        self._subs.setdefault(key, set()).add(q)
        try:
            yield Subscription(q)
        finally:
            subs = self._subs.get(key)
            if subs is not None:
                subs.discard(q)
                if not subs:
                    self._subs.pop(key, None)


class RedisChangeNotifier:
    """Fan-out across API workers through Redis pub/sub, one channel per hunt."""

    def __init__(self, url: str):
        self._redis = aioredis.from_url(url, decode_responses=True)

    @staticmethod
    def channel(hunt_id: UUID | str) -> str:
        return f"hunt:{hunt_id}:changes"

    async def publish(self, hunt_id: UUID | str, event: ChangeEvent) -> None:
        await self._redis.publish(self.channel(hunt_id), event.model_dump_json())

    @asynccontextmanager
    async def subscribe(self, hunt_id: UUID | str) -> AsyncIterator[Subscription]:
        q: asyncio.Queue = asyncio.Queue()
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self.channel(hunt_id))

        async def pump():
            try:
                async for msg in pubsub.listen():
                    if msg.get("type") != "message":
                        continue
                    await q.put(ChangeEvent.model_validate(json.loads(msg["data"])))
            except asyncio.CancelledError:
                raise
            except Exception as e:  # noqa: BLE001 - surfaced to the reader as SubscriptionClosed
                log.warning("notifier_feed_failed", hunt_id=str(hunt_id), error=str(e))
            await q.put(_CLOSED)

        task = asyncio.create_task(pump())
        try:
            yield Subscription(q)
        finally:
            task.cancel()
            try:
                await pubsub.unsubscribe(self.channel(hunt_id))
            finally:
                await pubsub.aclose()


_notifier: LocalChangeNotifier | RedisChangeNotifier | None = None


def get_notifier() -> LocalChangeNotifier | RedisChangeNotifier:
    global _notifier
    if _notifier is None:
        if settings.notifier_backend == "redis":
            _notifier = RedisChangeNotifier(settings.redis_url)
        else:
            _notifier = LocalChangeNotifier()
    return _notifier


def row_to_dict(row: Any) -> dict[str, Any]:
    """Column values of an ORM row, JSON-safe (uuid/datetime as strings)."""
    out: dict[str, Any] = {}
    for col in row.__table__.columns:
        value = getattr(row, col.key)
        if value is not None and not isinstance(value, (str, int, float, bool)):
            value = value.isoformat() if hasattr(value, "isoformat") else str(value)
        out[col.key] = value
    return out


async def notify(notifier, table: Table, event_type: EventType, row: Any) -> None:
    """Publish a row change; a failed publish never fails the write that caused it."""
    hunt_id = row.id if table == "hunts" else row.hunt_id
    event = ChangeEvent(table=table, event_type=event_type, new_row=row_to_dict(row))
    try:
        await notifier.publish(hunt_id, event)
    except Exception as e:  # noqa: BLE001 - clients reconcile by re-reading
        log.warning("notifier_publish_failed", hunt_id=str(hunt_id), table=table, error=str(e))
