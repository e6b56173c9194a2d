"""Tests du moteur de lobby : démarrage, joueurs, transitions, arrêt."""

import pytest

from core.exceptions import InvalidLobby, InvalidTransition, LobbyAlreadyExists
from core.lobby.engine import Lobby
from core.lobby.models import Phase, PlayerStatus


@pytest.mark.asyncio
async def test_start_connects_present_members_and_skips_bots(registry, voice_channel):
    alice = voice_channel.join(1, "alice")
    bob = voice_channel.join(2, "bob")
    voice_channel.join(3, "robot", bot=True)

    lobby = await Lobby.start(registry, voice_channel)

    assert registry.get(voice_channel.id) is lobby
    assert sorted(p.id for p in lobby.players) == [1, 2]
    assert lobby.phase is Phase.INTERMISSION
    assert alice.state == (False, False)
    assert bob.edits == [(False, False, "Lobby: intermission")]


@pytest.mark.asyncio
async def test_duplicate_start_fails_without_touching_existing_lobby(registry, voice_channel):
    alice = voice_channel.join(1, "alice")
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.transition(Phase.WORKING)
    edits_before = list(alice.edits)

    with pytest.raises(LobbyAlreadyExists):
        await Lobby.start(registry, voice_channel)

    assert registry.get(voice_channel.id) is lobby
    assert lobby.phase is Phase.WORKING
    assert alice.edits == edits_before


@pytest.mark.asyncio
async def test_transition_applies_voice_states(registry, voice_channel):
    alice = voice_channel.join(1, "alice")
    bob = voice_channel.join(2, "bob")
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.kill_player(bob)

    result = await lobby.transition("working")
    assert result.ok
    assert result.previous is Phase.INTERMISSION
    assert result.updated == 2
    assert alice.state == (True, True)
    assert bob.state == (False, False)

    await lobby.transition(Phase.MEETING)
    assert alice.state == (False, False)
    assert bob.state == (True, False)

    await lobby.transition("Intermission")
    assert alice.state == (False, False)
    assert bob.state == (False, False)


@pytest.mark.asyncio
async def test_transition_advances_despite_individual_failures(registry, voice_channel):
    alice = voice_channel.join(1, "alice")
    voice_channel.join(2, "bob", fail=True)
    lobby = await Lobby.start(registry, voice_channel)

    result = await lobby.transition(Phase.WORKING)

    assert lobby.phase is Phase.WORKING
    assert alice.state == (True, True)
    assert result.updated == 1
    assert [f.player.id for f in result.failures] == [2]
    assert isinstance(result.failures[0].error, RuntimeError)


@pytest.mark.asyncio
@pytest.mark.parametrize("target", ["lunch", "", None, 3])
async def test_unknown_phase_is_rejected(registry, voice_channel, target):
    alice = voice_channel.join(1, "alice")
    lobby = await Lobby.start(registry, voice_channel)
    edits_before = list(alice.edits)

    with pytest.raises(InvalidTransition):
        await lobby.transition(target)

    assert lobby.phase is Phase.INTERMISSION
    assert alice.edits == edits_before


@pytest.mark.asyncio
async def test_self_transition_is_rejected(registry, voice_channel):
    voice_channel.join(1, "alice")
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.transition(Phase.MEETING)

    with pytest.raises(InvalidTransition, match="déjà en phase meeting"):
        await lobby.transition("meeting")
    assert lobby.phase is Phase.MEETING


@pytest.mark.asyncio
async def test_connect_is_idempotent_and_keeps_status(registry, voice_channel):
    lobby = await Lobby.start(registry, voice_channel)
    carol = voice_channel.join(3, "carol")

    first = await lobby.connect_player(carol)
    await lobby.kill_player(carol)
    second = await lobby.connect_player(carol)

    assert first is second
    assert len(lobby) == 1
    assert second.status is PlayerStatus.DYING


@pytest.mark.asyncio
async def test_reconnect_reapplies_current_phase(registry, voice_channel):
    alice = voice_channel.join(1, "alice")
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.transition(Phase.WORKING)
    edits_before = len(alice.edits)

    await lobby.connect_player(alice)

    assert len(lobby) == 1
    assert alice.edits[edits_before:] == [(True, True, "Lobby: working")]


@pytest.mark.asyncio
async def test_connect_ignores_bots(registry, voice_channel):
    lobby = await Lobby.start(registry, voice_channel)
    robot = voice_channel.join(9, "robot", bot=True)

    assert await lobby.connect_player(robot) is None
    assert 9 not in lobby
    assert robot.edits == []


@pytest.mark.asyncio
async def test_kill_unconnected_member_creates_single_dying_record(registry, voice_channel):
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.transition(Phase.MEETING)
    dave = voice_channel.join(4, "dave")

    player = await lobby.kill_player(dave)

    assert lobby.players == [player]
    assert player.status is PlayerStatus.DYING
    assert dave.state == (True, False)


@pytest.mark.asyncio
async def test_revive_without_record_returns_none(registry, voice_channel):
    lobby = await Lobby.start(registry, voice_channel)
    erin = voice_channel.join(5, "erin")

    assert await lobby.revive_player(erin) is None
    assert len(lobby) == 0


@pytest.mark.asyncio
async def test_revive_restores_living_state(registry, voice_channel):
    frank = voice_channel.join(6, "frank")
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.transition(Phase.WORKING)
    await lobby.kill_player(frank)
    assert frank.state == (False, False)

    player = await lobby.revive_player(frank)

    assert player.is_living
    assert frank.state == (True, True)


@pytest.mark.asyncio
async def test_member_out_of_voice_is_skipped(registry, voice_channel):
    gina = voice_channel.join(7, "gina")
    lobby = await Lobby.start(registry, voice_channel)
    gina.voice = None

    result = await lobby.transition(Phase.WORKING)

    assert result.ok
    assert result.updated == 0
    assert result.skipped == 1
    assert len(gina.edits) == 1


@pytest.mark.asyncio
async def test_sync_failure_on_single_player_is_not_raised(registry, voice_channel):
    lobby = await Lobby.start(registry, voice_channel)
    henri = voice_channel.join(8, "henri", fail=True)

    player = await lobby.kill_player(henri)

    assert player.status is PlayerStatus.DYING
    assert 8 in lobby


@pytest.mark.asyncio
async def test_stop_restores_voice_and_unregisters(registry, voice_channel):
    alice = voice_channel.join(1, "alice")
    bob = voice_channel.join(2, "bob")
    lobby = await Lobby.start(registry, voice_channel)
    await lobby.kill_player(bob)
    await lobby.transition(Phase.MEETING)
    assert bob.state == (True, False)

    failures = await lobby.stop()

    assert failures == []
    assert registry.get(voice_channel.id) is None
    assert alice.state == (False, False)
    assert bob.state == (False, False)
    assert bob.edits[-1][2] == "Lobby arrêté"


@pytest.mark.asyncio
async def test_stop_does_not_remove_a_newer_lobby(registry, voice_channel):
    old = await Lobby.start(registry, voice_channel)
    registry.remove(voice_channel.id)
    new = await Lobby.start(registry, voice_channel)

    await old.stop()

    assert registry.get(voice_channel.id) is new


@pytest.mark.asyncio
async def test_fetch_member_uses_cache_then_api(registry, voice_channel):
    alice = voice_channel.join(1, "alice")
    lobby = await Lobby.start(registry, voice_channel)

    assert await lobby.fetch_member(1) is alice
    assert await lobby.fetch_member(404) is None


def test_invalid_construction():
    with pytest.raises(InvalidLobby):
        Lobby(0)
    with pytest.raises(InvalidLobby):
        Lobby("123")
    with pytest.raises(InvalidLobby):
        Lobby(1, phase="lunch")


def test_voice_channel_must_match(voice_channel):
    lobby = Lobby(voice_channel.id + 1)
    with pytest.raises(InvalidLobby):
        lobby.voice_channel = voice_channel


@pytest.mark.asyncio
async def test_snapshot(registry, voice_channel):
    voice_channel.join(1, "alice")
    text = type("Text", (), {"id": 55})()
    lobby = await Lobby.start(registry, voice_channel, text)

    assert lobby.to_dict() == {
        "voice_channel_id": "100",
        "text_channel_id": "55",
        "phase": "intermission",
        "room": None,
        "players": [{"id": "1", "name": "alice", "status": "living"}],
    }
