from __future__ import annotations
import io
import os
import tempfile

# Must be set before app.config is imported
_tmp = tempfile.mkdtemp(prefix="photohunt-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp}/test.db"
os.environ["NOTIFIER_BACKEND"] = "memory"
os.environ["SIGNED_URL_DELAY_MS"] = "1"

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import AsyncClient
from PIL import Image
from app.db import Base, SessionLocal, engine
from app.main import app
from app.models.pack import Pack, Prompt
from app.services.notifier import ChangeEvent, LocalChangeNotifier, get_notifier
from app.services.storage import BlobUnavailable, get_blob_store


class MemoryBlobStore:
    """Blob store double. `lag` = how many signed_url calls miss after each put."""

    def __init__(self, lag: int = 0, fail_puts: bool = False):
        self.objects: dict[str, bytes] = {}
        self.lag = lag
        self.fail_puts = fail_puts
        self._misses: dict[str, int] = {}
        self.signed_calls = 0

    def put(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_puts:
            raise OSError("connection reset by blob store")
        self.objects[path] = data
        self._misses[path] = self.lag
        return path

    def signed_url(self, path: str, ttl_seconds: int) -> str:
        self.signed_calls += 1
        if path not in self.objects:
            raise BlobUnavailable(path)
        if self._misses.get(path, 0) > 0:
            self._misses[path] -= 1
            raise BlobUnavailable(path)
        return f"https://blobs.test/{path}?ttl={ttl_seconds}"


class RecordingNotifier(LocalChangeNotifier):
    def __init__(self):
        super().__init__()
        self.events: list[tuple[str, ChangeEvent]] = []

    async def publish(self, hunt_id, event: ChangeEvent) -> None:
        self.events.append((str(hunt_id), event))
        await super().publish(hunt_id, event)

    def status_changes(self, hunt_id) -> list[str]:
        return [
            e.new_row["status"] for (h, e) in self.events
            if h == str(hunt_id) and e.table == "hunts" and e.event_type == "UPDATE"
        ]


def png_bytes(color: str = "red") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


async def reset_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest_asyncio.fixture
async def api(blob_store, notifier):
    await reset_schema()
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def sync_client(blob_store, notifier):
    """Blocking client for WebSocket tests; app code runs on the client's portal loop."""
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as client:
        client.portal.call(reset_schema)
        yield client
    app.dependency_overrides.clear()


async def seed_pack(slug: str = "old-town", prompts: list[str] | None = None) -> list:
    """Insert a pack with prompts; returns the prompt ids in insertion order."""
    texts = prompts or ["A red door", "A cat in a window", "Something older than you"]
    async with SessionLocal() as session:
        session.add(Pack(slug=slug, name=slug.replace("-", " ").title(), description="Test pack", area="Centre", radius_km=1.5))
        rows = [Prompt(text=t, pack=slug) for t in texts]
        session.add_all(rows)
        await session.commit()
        return [r.id for r in rows]
