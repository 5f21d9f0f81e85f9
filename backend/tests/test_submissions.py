from __future__ import annotations
import asyncio
import random
import pytest
import urllib3
from minio import Minio
from app.main import app
from app.client.errors import HuntClientError
from app.client.hunt_client import HuntClient
from app.services.storage import BlobStore, get_blob_store, signed_url_with_retry
from conftest import png_bytes, seed_pack


async def _started(api, players=1):
    prompt_ids = await seed_pack()
    host = await HuntClient.register(api, "host", rng=random.Random(1))
    hunt = await host.create_hunt("old-town", display_name="Host")
    others = []
    for i in range(players - 1):
        c = await HuntClient.register(api, f"p{i}", rng=random.Random(i + 2))
        await c.join(hunt.code, f"P{i}")
        others.append(c)
    await host.start()
    return prompt_ids, host, others


@pytest.mark.asyncio
async def test_ensure_submission_is_idempotent(api):
    prompt_ids, host, _ = await _started(api)
    first = await host._call("POST", host._hunt_url("/submissions"), json={"prompt_id": str(prompt_ids[0])})
    second = await host._call("POST", host._hunt_url("/submissions"), json={"prompt_id": str(prompt_ids[0])})
    assert first["id"] == second["id"]
    assert first["state"] == "needs_photo" and first["photo_url"] is None


@pytest.mark.asyncio
async def test_concurrent_ensure_creates_one_submission(api):
    prompt_ids, host, _ = await _started(api)
    url = host._hunt_url("/submissions")
    rows = await asyncio.gather(*(
        host._call("POST", url, json={"prompt_id": str(prompt_ids[1])}) for _ in range(4)
    ))
    assert len({r["id"] for r in rows}) == 1
    assert len(await host.sync_submissions()) == 1


@pytest.mark.asyncio
async def test_prompt_from_another_pack_is_rejected(api):
    _, host, _ = await _started(api)
    foreign = await seed_pack("elsewhere", ["A bridge"])
    with pytest.raises(HuntClientError) as e:
        await host.ensure_submission(foreign[0])
    assert e.value.status_code == 400 and e.value.error == "InvalidPrompt"


@pytest.mark.asyncio
async def test_non_member_cannot_submit(api):
    prompt_ids, host, _ = await _started(api)
    stranger = await HuntClient.register(api)
    stranger.hunt_id = host.hunt_id
    with pytest.raises(HuntClientError) as e:
        await stranger.ensure_submission(prompt_ids[0])
    assert e.value.status_code == 403


@pytest.mark.asyncio
async def test_upload_saves_photo_and_orders_prompts(api, blob_store):
    prompt_ids, host, _ = await _started(api)
    prompts = await host.load_prompts()
    assert sorted(p.id for p in prompts) == sorted(prompt_ids)
    assert await host.load_prompts() == prompts

    target = prompts[0].id
    saved = await host.upload_photo(target, png_bytes(), "door.png")

    assert saved.state == "saved"
    assert saved.photo_url.startswith("https://blobs.test/")
    assert len(blob_store.objects) == 1
    path = next(iter(blob_store.objects))
    assert path.startswith(f"{host.hunt_id}/{host.player_id}/{target}/") and path.endswith(".png")
    assert [p.id for p in host.display_prompts()][-1] == target


@pytest.mark.asyncio
async def test_lagging_storage_is_retried(api, blob_store):
    prompt_ids, host, _ = await _started(api)
    blob_store.lag = 3
    saved = await host.upload_photo(prompt_ids[0], png_bytes())
    assert saved.photo_url is not None
    assert blob_store.signed_calls == 4


@pytest.mark.asyncio
async def test_storage_that_never_catches_up_gives_no_url(api, blob_store):
    prompt_ids, host, _ = await _started(api)
    blob_store.lag = 100
    saved = await host.upload_photo(prompt_ids[0], png_bytes())
    assert saved.state == "saved"
    assert saved.photo_url is None


@pytest.mark.asyncio
async def test_failed_blob_write_leaves_an_intent(api, blob_store):
    prompt_ids, host, _ = await _started(api)
    blob_store.fail_puts = True
    with pytest.raises(HuntClientError) as e:
        await host.upload_photo(prompt_ids[0], png_bytes())
    assert e.value.status_code == 502 and e.value.error == "BlobWriteFailed"

    (sub,) = await host.sync_submissions()
    assert sub.state == "needs_photo"

    blob_store.fail_puts = False
    assert (await host.upload_photo(prompt_ids[0], png_bytes())).state == "saved"


@pytest.mark.asyncio
async def test_photo_is_attached_once(api):
    prompt_ids, host, _ = await _started(api)
    await host.upload_photo(prompt_ids[0], png_bytes())
    with pytest.raises(HuntClientError) as e:
        await host.upload_photo(prompt_ids[0], png_bytes("blue"))
    assert e.value.status_code == 409 and e.value.error == "PhotoAlreadyAttached"


@pytest.mark.asyncio
async def test_invalid_image_is_rejected(api):
    prompt_ids, host, _ = await _started(api)
    with pytest.raises(HuntClientError) as e:
        await host.upload_photo(prompt_ids[0], b"definitely not a photo")
    assert e.value.status_code == 400 and e.value.error == "InvalidImage"


@pytest.mark.asyncio
async def test_cannot_attach_to_someone_elses_submission(api):
    prompt_ids, host, (guest,) = await _started(api, players=2)
    sid = await host.ensure_submission(prompt_ids[0])
    r = await api.put(
        f"/hunts/{host.hunt_id}/submissions/{sid}/photo",
        headers=guest.headers,
        files={"file": ("x.png", png_bytes(), "image/png")},
    )
    assert r.status_code == 403


def _unreachable_store() -> BlobStore:
    # Nothing listens on port 1; no urllib3 retries so the failure is immediate
    client = Minio(
        "127.0.0.1:1", access_key="k", secret_key="s", secure=False, region="us-east-1",
        http_client=urllib3.PoolManager(retries=urllib3.Retry(total=0)),
    )
    return BlobStore(client, "photos")


@pytest.mark.asyncio
async def test_unreachable_store_means_no_preview():
    assert await signed_url_with_retry(_unreachable_store(), "x/y.png", tries=2, delay_ms=1) is None


@pytest.mark.asyncio
async def test_unreachable_store_during_listing_and_upload(api):
    prompt_ids, host, _ = await _started(api)
    await host.upload_photo(prompt_ids[0], png_bytes())

    dead = _unreachable_store()
    app.dependency_overrides[get_blob_store] = lambda: dead

    (sub,) = await host.sync_submissions()
    assert sub.state == "saved" and sub.photo_url is None

    with pytest.raises(HuntClientError) as e:
        await host.upload_photo(prompt_ids[1], png_bytes())
    assert e.value.status_code == 502 and e.value.error == "BlobWriteFailed"
    states = {s.prompt_id: s.state for s in await host.sync_submissions()}
    assert states[prompt_ids[1]] == "needs_photo"
