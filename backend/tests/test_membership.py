from __future__ import annotations
import asyncio
import pytest
from app.client.errors import HuntClientError
from app.client.hunt_client import HuntClient
from conftest import seed_pack


@pytest.mark.asyncio
async def test_creator_is_host_and_roster_counts(api):
    await seed_pack()
    host = await HuntClient.register(api, "h")
    hunt = await host.create_hunt("old-town", display_name="  Hana  ")
    assert hunt.status == "lobby"
    assert len(hunt.code) == 5
    assert hunt.is_host and hunt.is_member and hunt.player_count == 1

    guest = await HuntClient.register(api, "g")
    hp = await guest.join(hunt.code.lower(), display_name=None)
    assert hp.role == "player"
    assert hp.display_name == "Anonymous"

    view = await guest.refresh()
    assert view.player_count == 2
    assert view.is_member and not view.is_host
    names = {p.display_name for p in await host.players()}
    assert names == {"Hana", "Anonymous"}


@pytest.mark.asyncio
async def test_rejoin_is_idempotent_and_never_downgrades_host(api):
    await seed_pack()
    host = await HuntClient.register(api)
    hunt = await host.create_hunt("old-town", display_name="Host")

    again = await host.join(hunt.code, display_name="Someone else")
    assert again.role == "host"
    assert again.display_name == "Host"
    assert len(await host.players()) == 1


@pytest.mark.asyncio
async def test_concurrent_joins_from_one_player_make_one_row(api):
    await seed_pack()
    host = await HuntClient.register(api)
    hunt = await host.create_hunt("old-town")
    guest = await HuntClient.register(api)

    rows = await asyncio.gather(*(guest.join(hunt.code, "G") for _ in range(4)))

    assert len({r.id for r in rows}) == 1
    assert len(await host.players()) == 2


@pytest.mark.asyncio
async def test_join_with_bad_or_empty_code(api):
    await seed_pack()
    p = await HuntClient.register(api)
    with pytest.raises(HuntClientError) as e:
        await p.join("ZZZZZ")
    assert e.value.status_code == 404

    r = await api.post("/hunts/%20/join", headers=p.headers, json={})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_unknown_pack_and_bad_completion_options(api):
    await seed_pack()
    p = await HuntClient.register(api)
    with pytest.raises(HuntClientError) as e:
        await p.create_hunt("no-such-pack")
    assert e.value.status_code == 400 and e.value.error == "UnknownPack"

    r = await api.post("/hunts", headers=p.headers, json={"pack": "old-town", "required_prompt_count": 2})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_display_name_update_and_blank_means_anonymous(api):
    await seed_pack()
    p = await HuntClient.register(api)
    await p.create_hunt("old-town", display_name="First")
    assert (await p.set_display_name("  Second ")).display_name == "Second"
    assert (await p.set_display_name("   ")).display_name == "Anonymous"


@pytest.mark.asyncio
async def test_leave_removes_membership_and_history(api):
    await seed_pack()
    host = await HuntClient.register(api)
    hunt = await host.create_hunt("old-town")
    guest = await HuntClient.register(api)
    await guest.join(hunt.code)
    assert [g["hunt_code"] for g in await guest.history()] == [hunt.code]

    await guest.leave(hunt.id)

    assert guest.hunt_id is None
    assert await guest.history() == []
    assert len(await host.players()) == 1
    r = await api.get(f"/hunts/{hunt.id}", headers=guest.headers)
    assert r.json()["is_member"] is False


@pytest.mark.asyncio
async def test_history_lists_role_and_status(api):
    await seed_pack()
    p = await HuntClient.register(api)
    h1 = await p.create_hunt("old-town")
    other = await HuntClient.register(api)
    h2 = await other.create_hunt("old-town")
    await p.join(h2.code)

    games = {g["hunt_code"]: g for g in await p.history()}
    assert games[h1.code]["role"] == "host"
    assert games[h2.code]["role"] == "player"
    assert games[h2.code]["hunt_status"] == "lobby"


@pytest.mark.asyncio
async def test_requests_need_a_valid_player_token(api):
    r = await api.get("/players/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    p = await HuntClient.register(api, "me")
    r = await api.get("/players/me", headers=p.headers)
    assert r.status_code == 200 and r.json()["name"] == "me"


@pytest.mark.asyncio
async def test_pack_catalog(api):
    prompt_ids = await seed_pack("harbour", ["A boat", "A gull"])
    packs = (await api.get("/packs")).json()
    assert [p["slug"] for p in packs] == ["harbour"]
    prompts = (await api.get("/packs/harbour/prompts")).json()
    assert {p["id"] for p in prompts} == {str(i) for i in prompt_ids}
    assert (await api.get("/packs/nowhere/prompts")).status_code == 404


@pytest.mark.asyncio
async def test_join_answers_created_then_ok(api):
    await seed_pack()
    host = await HuntClient.register(api)
    hunt = await host.create_hunt("old-town")
    guest = await HuntClient.register(api)

    first = await api.post(f"/hunts/{hunt.code}/join", headers=guest.headers, json={"display_name": "G"})
    again = await api.post(f"/hunts/{hunt.code}/join", headers=guest.headers, json={"display_name": "G2"})

    assert (first.status_code, again.status_code) == (201, 200)
    assert first.json()["id"] == again.json()["id"]
    assert again.json()["display_name"] == "G"
