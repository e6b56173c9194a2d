from types import SimpleNamespace

import pytest
import pytest_asyncio
from aiohttp import test_utils

from api.server import create_app
from core.lobby.engine import Lobby
from core.lobby.models import Phase


@pytest.fixture
def bot(registry, guild, voice_channel):
    return SimpleNamespace(
        lobbies=registry,
        guilds=[guild],
        get_channel=lambda channel_id: voice_channel if channel_id == voice_channel.id else None,
    )


@pytest_asyncio.fixture
async def client(bot):
    async with test_utils.TestClient(test_utils.TestServer(create_app(bot, version="1.2.3"))) as client:
        yield client


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/", "/server"])
async def test_server_info(client, registry, voice_channel, path):
    await Lobby.start(registry, voice_channel)

    resp = await client.get(path)

    assert resp.status == 200
    assert await resp.json() == {"version": "1.2.3", "guilds_supported": 1, "lobbies_in_progress": 1}


@pytest.mark.asyncio
async def test_server_guilds(client, voice_channel):
    voice_channel.join(1, "alice")

    resp = await client.get("/server/guilds")

    assert await resp.json() == [{"id": "1", "name": "Guilde", "member_count": 1}]


@pytest.mark.asyncio
async def test_server_lobbies(client, registry, voice_channel):
    voice_channel.join(1, "alice")
    await Lobby.start(registry, voice_channel)

    resp = await client.get("/server/lobbies")

    body = await resp.json()
    assert [lobby["voice_channel_id"] for lobby in body] == ["100"]


@pytest.mark.asyncio
async def test_unknown_route_returns_json_404(client):
    resp = await client.get("/nothing/here")

    assert resp.status == 404
    assert await resp.json() == {"status": 404, "message": "Aucun point d'API de ce type."}


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/lobby/999", "/lobby/abc"])
async def test_unknown_lobby(client, path):
    resp = await client.get(path)

    assert resp.status == 404
    assert await resp.json() == {"status": 404, "message": "Aucun lobby pour ce salon vocal."}


@pytest.mark.asyncio
async def test_lobby_snapshot(client, registry, voice_channel):
    voice_channel.join(1, "alice")
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.transition(Phase.WORKING)

    resp = await client.get("/lobby/100")

    assert resp.status == 200
    body = await resp.json()
    assert body["phase"] == "working"
    assert body["players"] == [{"id": "1", "name": "alice", "status": "living"}]


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["get", "post"])
async def test_kill_player(client, registry, voice_channel, method):
    alice = voice_channel.join(1, "alice")
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.transition(Phase.MEETING)

    resp = await getattr(client, method)("/lobby/100/1/kill")

    assert resp.status == 200
    assert await resp.json() == {"id": "1", "name": "alice", "status": "dying"}
    assert alice.state == (True, False)


@pytest.mark.asyncio
async def test_kill_member_not_yet_connected(client, registry, voice_channel):
    lobby = await Lobby.start(registry, voice_channel)
    voice_channel.join(2, "bob")

    resp = await client.post("/lobby/100/2/kill")

    assert resp.status == 200
    assert lobby.get_player(2).status.value == "dying"


@pytest.mark.asyncio
@pytest.mark.parametrize("player", ["404", "xyz", "9"])
async def test_kill_unknown_player(client, registry, voice_channel, player):
    voice_channel.join(9, "robot", bot=True)
    await Lobby.start(registry, voice_channel)

    resp = await client.post(f"/lobby/100/{player}/kill")

    assert resp.status == 404
    assert (await resp.json())["message"] == "Aucun joueur de ce type pour ce lobby."
