"""
Handlers pour les événements vocaux Discord.

- Un membre qui rejoint le salon vocal d'un lobby y est connecté comme joueur
  (ou resynchronisé s'il était déjà suivi).
- La suppression du salon vocal d'un lobby arrête le lobby : les joueurs
  encore connectés ailleurs retrouvent leur voix.
"""
from __future__ import annotations

import logging
import discord

logger = logging.getLogger(__name__)


async def handle_voice_state_update(registry, member, before, after) -> None:
    before_channel = getattr(before, "channel", None)
    after_channel = getattr(after, "channel", None)
    if after_channel is None or after_channel == before_channel:
        return
    lobby = registry.get(after_channel.id)
    if lobby is None:
        return
    lobby.voice_channel = after_channel
    try:
        await lobby.connect_player(member)
    except Exception:  # noqa: BLE001
        logger.exception("Echec connexion joueur %s au lobby %s", member.id, after_channel.id)


async def handle_channel_delete(registry, channel) -> None:
    lobby = registry.get(channel.id)
    if lobby is None:
        return
    lobby.emit("Salon vocal supprimé, arrêt du lobby")
    try:
        await lobby.stop()
    except Exception:  # noqa: BLE001
        logger.exception("Echec arrêt du lobby %s", channel.id)
        registry.remove(channel.id, expected=lobby)


def setup(bot: discord.Client):
    @bot.event
    async def on_voice_state_update(member: discord.Member, before: discord.VoiceState, after: discord.VoiceState):
        registry = getattr(bot, "lobbies", None)
        if registry is None:
            return
        await handle_voice_state_update(registry, member, before, after)

    @bot.event
    async def on_guild_channel_delete(channel: discord.abc.GuildChannel):
        registry = getattr(bot, "lobbies", None)
        if registry is None:
            return
        if isinstance(channel, (discord.VoiceChannel, discord.StageChannel)):
            await handle_channel_delete(registry, channel)


__all__ = ["setup", "handle_voice_state_update", "handle_channel_delete"]
