"""
Fixtures et faux objets Discord pour les tests.

Les faux membres enregistrent chaque appel à `edit` et reflètent l'état vocal
appliqué, ce qui permet de vérifier mute/deaf sans client Discord.
"""

import copy
from types import SimpleNamespace

import discord
import pytest

from core.lobby.registry import LobbyRegistry
from db.documents import MemoryDocumentStore

BOT_VOICE_PERMISSIONS = 0x00C00000


class FakeMember:
    def __init__(self, member_id, name=None, *, bot=False, channel=None, fail=False, permissions=0):
        self.id = member_id
        self.display_name = name or f"membre-{member_id}"
        self.bot = bot
        self.fail = fail
        self.edits = []
        self.voice = SimpleNamespace(channel=channel, mute=False, deaf=False) if channel is not None else None
        self.guild_permissions = discord.Permissions(permissions)

    async def edit(self, *, mute=None, deafen=None, reason=None):
        self.edits.append((mute, deafen, reason))
        if self.fail:
            raise RuntimeError("edit refusé")
        self.voice.mute = mute
        self.voice.deaf = deafen

    @property
    def state(self):
        return (self.voice.mute, self.voice.deaf)


class FakeGuild:
    def __init__(self, guild_id=1, name="Guilde"):
        self.id = guild_id
        self.name = name
        self.members = {}
        self.me = FakeMember(0, "bot", bot=True)

    @property
    def member_count(self):
        return len(self.members)

    def get_member(self, member_id):
        return self.members.get(member_id)

    async def fetch_member(self, member_id):
        raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Member")


class FakeVoiceChannel:
    def __init__(self, channel_id=100, guild=None, name="Skeld"):
        self.id = channel_id
        self.name = name
        self.guild = guild or FakeGuild()
        self.members = []
        self.bot_permissions = BOT_VOICE_PERMISSIONS

    def permissions_for(self, member):
        return discord.Permissions(self.bot_permissions)

    def join(self, member_id, name=None, **kwargs):
        member = FakeMember(member_id, name, channel=self, **kwargs)
        self.members.append(member)
        self.guild.members[member_id] = member
        return member


class RecordingStore(MemoryDocumentStore):
    """Magasin mémoire qui compte lectures et écritures."""

    def __init__(self):
        super().__init__("guilds")
        self.reads = 0
        self.writes = []
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, doc_id):
        self.reads += 1
        if self.fail_reads:
            raise ConnectionError("base injoignable")
        return await super().get(doc_id)

    async def set(self, document):
        if self.fail_writes:
            raise ConnectionError("base injoignable")
        self.writes.append(copy.deepcopy(document))
        return await super().set(document)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def registry():
    return LobbyRegistry()


@pytest.fixture
def guild():
    return FakeGuild()


@pytest.fixture
def voice_channel(guild):
    return FakeVoiceChannel(100, guild)


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def clock():
    return FakeClock()
