"""
Commandes texte préfixées (`!sau start`, `!s w`, `!s kill @membre`...).

Les préfixes sont propres à chaque guilde et lus via le cache de configuration
à chaque message : le cache évite un aller-retour en base par message.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import discord

from core.exceptions import LobbyAlreadyExists, ValidationError
from core.guild_config import Setting
from core.lobby import Lobby
from core.permissions import has_perms, missing_voice_perms, MANAGE_GUILD
from views import lobby as lobby_view
from views import settings as settings_view

logger = logging.getLogger(__name__)

PHASE_ALIASES = {
    "intermission": "intermission", "i": "intermission",
    "working": "working", "w": "working",
    "meeting": "meeting", "m": "meeting",
}

LOBBY_COMMANDS = {"stop", "status", "kill", "revive", *PHASE_ALIASES}

HELP = (
    "Commandes: `start`, `stop`, `intermission|i`, `working|w`, `meeting|m`, "
    "`kill @membre`, `revive @membre`, `status`, `prefix [valeurs|reset]`"
)


def parse_command(content: str, prefixes: Sequence[str]) -> Optional[List[str]]:
    """Retourne les arguments si le message commence par un des préfixes."""
    lowered = content.lower()
    for prefix in sorted(prefixes, key=len, reverse=True):
        if not lowered.startswith(prefix):
            continue
        rest = content[len(prefix):]
        if rest and not rest[0].isspace():
            continue
        return rest.split()
    return None


def _author_lobby(bot, message: discord.Message) -> Optional[Lobby]:
    voice = getattr(message.author, "voice", None)
    if voice is None or voice.channel is None:
        return None
    lobby = bot.lobbies.get(voice.channel.id)
    if lobby is not None:
        lobby.voice_channel = voice.channel
    return lobby


async def handle_command(bot, message: discord.Message, cfg, args: List[str]) -> str:
    """Exécute une commande préfixée et retourne le texte de réponse."""
    if not args or args[0].lower() == "help":
        return HELP
    command, rest = args[0].lower(), args[1:]

    if command == "prefix":
        if not rest:
            return settings_view.msg_valeur_definie(Setting.PREFIX.value, cfg.command_prefixes)
        if not has_perms(message.author, MANAGE_GUILD):
            return "Permission « Gérer le serveur » requise."
        if len(rest) == 1 and rest[0].lower() == "reset":
            value = cfg.reset(Setting.PREFIX)
            return settings_view.msg_valeur_reinitialisee(Setting.PREFIX.value, value)
        value = cfg.set(Setting.PREFIX, " ".join(rest))
        return settings_view.msg_valeur_definie(Setting.PREFIX.value, value)

    if command == "start":
        voice = getattr(message.author, "voice", None)
        if voice is None or voice.channel is None:
            return lobby_view.msg_pas_en_vocal()
        missing = missing_voice_perms(voice.channel)
        if missing:
            return lobby_view.msg_permissions_bot(missing)
        try:
            lobby = await Lobby.start(bot.lobbies, voice.channel, message.channel)
        except LobbyAlreadyExists:
            return lobby_view.msg_lobby_existe()
        return f"Lobby démarré avec {len(lobby)} joueur(s)."

    if command not in LOBBY_COMMANDS:
        return f"Commande inconnue `{command}`. {HELP}"

    lobby = _author_lobby(bot, message)
    if lobby is None:
        return lobby_view.msg_aucun_lobby() if getattr(message.author, "voice", None) else lobby_view.msg_pas_en_vocal()

    if command == "stop":
        failures = await lobby.stop()
        return lobby_view.msg_lobby_arrete(len(failures))
    if command in PHASE_ALIASES:
        result = await lobby.transition(PHASE_ALIASES[command])
        return lobby_view.fmt_transition(result)
    if command == "status":
        return "\n".join(
            [f"Phase: **{lobby_view.PHASE_LABELS[lobby.phase]}**"]
            + [lobby_view.fmt_player_line(p) for p in lobby.players]
        )
    # kill / revive : les membres mentionnés, à défaut l'auteur
    targets = [m for m in message.mentions if isinstance(m, discord.Member)] or [message.author]
    lines = []
    for member in targets:
        if member.bot:
            continue
        if command == "kill":
            player = await lobby.kill_player(member)
            lines.append(lobby_view.msg_joueur_tue(player))
        else:
            player = await lobby.revive_player(member)
            lines.append(
                lobby_view.msg_joueur_ressuscite(player) if player
                else lobby_view.msg_joueur_inconnu(member.display_name)
            )
    return "\n".join(lines) or lobby_view.msg_bot_ignore()


def setup(bot: discord.Client):
    @bot.event
    async def on_message(message: discord.Message):
        if message.author.bot or message.guild is None or not message.content:
            return
        cache = getattr(bot, "guild_configs", None)
        if cache is None:
            return
        cfg = await cache.load(message.guild.id)
        args = parse_command(message.content.strip(), cfg.command_prefixes)
        if args is None:
            return
        try:
            reply = await handle_command(bot, message, cfg, args)
        except ValidationError as exc:
            reply = settings_view.msg_erreur(exc)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur commande texte %r", message.content)
            return
        try:
            await message.reply(reply, mention_author=False)
        except discord.HTTPException:
            logger.debug("Réponse impossible dans %s", message.channel.id, exc_info=True)


__all__ = ["setup", "parse_command", "handle_command"]
