"""
Groupe de commandes slash `/lobby` (start, stop, phase, kill, revive, show).

Le lobby visé est celui du salon vocal passé en option, à défaut celui où se
trouve l'auteur de la commande.
"""
from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands

from core.exceptions import InvalidTransition, LobbyAlreadyExists
from core.lobby import Lobby, LobbyRegistry, Phase
from core.permissions import missing_voice_perms
from views import lobby as lobby_view

logger = logging.getLogger(__name__)

lobby_group = app_commands.Group(name="lobby", description="Gestion des lobbies de jeu", guild_only=True)

PHASE_CHOICES = [
    app_commands.Choice(name=lobby_view.PHASE_LABELS[phase], value=phase.value) for phase in Phase
]


def get_registry(client: discord.Client) -> LobbyRegistry:
    registry = getattr(client, "lobbies", None)
    if registry is None:
        raise RuntimeError("Registre des lobbies non initialisé")
    return registry  # type: ignore


def resolve_voice_channel(guild: Optional[discord.Guild], member, channel: Optional[str]):
    """Salon vocal explicite (id) ou salon vocal courant du membre."""
    if channel:
        try:
            ch = guild.get_channel(int(channel)) if guild else None
        except ValueError:
            return None
        return ch if isinstance(ch, (discord.VoiceChannel, discord.StageChannel)) else None
    voice = getattr(member, "voice", None)
    return voice.channel if voice is not None else None


async def _lobby_or_reply(interaction: discord.Interaction, channel: Optional[str]) -> Optional[Lobby]:
    voice_channel = resolve_voice_channel(interaction.guild, interaction.user, channel)
    if voice_channel is None:
        await interaction.response.send_message(
            lobby_view.msg_salon_invalide() if channel else lobby_view.msg_pas_en_vocal(), ephemeral=True
        )
        return None
    lobby = get_registry(interaction.client).get(voice_channel.id)
    if lobby is None:
        await interaction.response.send_message(lobby_view.msg_aucun_lobby(), ephemeral=True)
        return None
    lobby.voice_channel = voice_channel
    return lobby


@lobby_group.command(name="start", description="Démarrer un lobby sur un salon vocal")
@app_commands.describe(salon="Salon vocal du lobby (par défaut : ton salon actuel)")
async def lobby_start(interaction: discord.Interaction, salon: Optional[str] = None):
    voice_channel = resolve_voice_channel(interaction.guild, interaction.user, salon)
    if voice_channel is None:
        await interaction.response.send_message(
            lobby_view.msg_salon_invalide() if salon else lobby_view.msg_pas_en_vocal(), ephemeral=True
        )
        return
    missing = missing_voice_perms(voice_channel)
    if missing:
        await interaction.response.send_message(lobby_view.msg_permissions_bot(missing), ephemeral=True)
        return
    registry = get_registry(interaction.client)
    if voice_channel.id in registry:
        await interaction.response.send_message(lobby_view.msg_lobby_existe(), ephemeral=True)
        return
    await interaction.response.defer(thinking=True)
    try:
        lobby = await Lobby.start(registry, voice_channel, interaction.channel)
    except LobbyAlreadyExists:
        await interaction.followup.send(lobby_view.msg_lobby_existe(), ephemeral=True)
        return
    await interaction.followup.send(embed=lobby_view.build_lobby_embed(lobby))


@lobby_group.command(name="stop", description="Arrêter le lobby et rétablir la voix")
@app_commands.describe(salon="Salon vocal du lobby")
async def lobby_stop(interaction: discord.Interaction, salon: Optional[str] = None):
    lobby = await _lobby_or_reply(interaction, salon)
    if lobby is None:
        return
    await interaction.response.defer(thinking=True)
    failures = await lobby.stop()
    await interaction.followup.send(lobby_view.msg_lobby_arrete(len(failures)))


@lobby_group.command(name="phase", description="Changer la phase du lobby")
@app_commands.describe(phase="Nouvelle phase", salon="Salon vocal du lobby")
@app_commands.choices(phase=PHASE_CHOICES)
async def lobby_phase(interaction: discord.Interaction, phase: app_commands.Choice[str], salon: Optional[str] = None):
    lobby = await _lobby_or_reply(interaction, salon)
    if lobby is None:
        return
    if lobby.phase.value == phase.value:
        await interaction.response.send_message(str(InvalidTransition(lobby.phase, lobby.phase)), ephemeral=True)
        return
    await interaction.response.defer(thinking=True)
    try:
        result = await lobby.transition(phase.value)
    except InvalidTransition as exc:
        await interaction.followup.send(str(exc), ephemeral=True)
        return
    await interaction.followup.send(lobby_view.fmt_transition(result))


@lobby_group.command(name="kill", description="Marquer un joueur comme mort")
@app_commands.describe(membre="Joueur tué", salon="Salon vocal du lobby")
async def lobby_kill(interaction: discord.Interaction, membre: discord.Member, salon: Optional[str] = None):
    lobby = await _lobby_or_reply(interaction, salon)
    if lobby is None:
        return
    if membre.bot:
        await interaction.response.send_message(lobby_view.msg_bot_ignore(), ephemeral=True)
        return
    await interaction.response.defer(thinking=True)
    player = await lobby.kill_player(membre)
    await interaction.followup.send(lobby_view.msg_joueur_tue(player))


@lobby_group.command(name="revive", description="Ramener un joueur à la vie")
@app_commands.describe(membre="Joueur à ressusciter", salon="Salon vocal du lobby")
async def lobby_revive(interaction: discord.Interaction, membre: discord.Member, salon: Optional[str] = None):
    lobby = await _lobby_or_reply(interaction, salon)
    if lobby is None:
        return
    if membre.id not in lobby:
        await interaction.response.send_message(lobby_view.msg_joueur_inconnu(membre.display_name), ephemeral=True)
        return
    await interaction.response.defer(thinking=True)
    player = await lobby.revive_player(membre)
    if player is None:
        await interaction.followup.send(lobby_view.msg_joueur_inconnu(membre.display_name), ephemeral=True)
        return
    await interaction.followup.send(lobby_view.msg_joueur_ressuscite(player))


@lobby_group.command(name="show", description="Afficher l'état du lobby")
@app_commands.describe(salon="Salon vocal du lobby")
async def lobby_show(interaction: discord.Interaction, salon: Optional[str] = None):
    lobby = await _lobby_or_reply(interaction, salon)
    if lobby is None:
        return
    await interaction.response.send_message(embed=lobby_view.build_lobby_embed(lobby), ephemeral=True)


def _voice_choices(guild: discord.Guild, registry: LobbyRegistry, current: str, *, with_lobby: bool):
    current_lower = (current or '').lower()
    choices: list[app_commands.Choice[str]] = []
    for ch in guild.channels:
        if not isinstance(ch, (discord.VoiceChannel, discord.StageChannel)):
            continue
        if (ch.id in registry) != with_lobby:
            continue
        if current_lower and current_lower not in ch.name.lower():
            continue
        choices.append(app_commands.Choice(name=ch.name[:100], value=str(ch.id)))
        if len(choices) >= 25:
            break
    return choices


@lobby_start.autocomplete('salon')
async def lobby_start_channel_ac(interaction: discord.Interaction, current: str):
    try:
        registry = get_registry(interaction.client)
    except Exception:  # noqa: BLE001
        return []
    if not interaction.guild:
        return []
    return _voice_choices(interaction.guild, registry, current, with_lobby=False)


@lobby_stop.autocomplete('salon')
@lobby_phase.autocomplete('salon')
@lobby_kill.autocomplete('salon')
@lobby_revive.autocomplete('salon')
@lobby_show.autocomplete('salon')
async def lobby_channel_ac(interaction: discord.Interaction, current: str):
    try:
        registry = get_registry(interaction.client)
    except Exception:  # noqa: BLE001
        return []
    if not interaction.guild:
        return []
    return _voice_choices(interaction.guild, registry, current, with_lobby=True)


def register(bot: discord.Client):
    bot.tree.add_command(lobby_group)

__all__ = ["register", "get_registry", "resolve_voice_channel"]
