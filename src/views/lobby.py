"""
Textes et embed pour les commandes de lobby (`/lobby` et commandes préfixées).
"""
from __future__ import annotations

import discord

from core.lobby import Phase, Player, PlayerStatus, TransitionResult

PHASE_COLORS = {
    Phase.INTERMISSION: discord.Color.blurple(),
    Phase.WORKING: discord.Color.green(),
    Phase.MEETING: discord.Color.red(),
}

PHASE_LABELS = {
    Phase.INTERMISSION: "Intermission",
    Phase.WORKING: "Tâches",
    Phase.MEETING: "Réunion",
}

STATUS_ICONS = {
    PlayerStatus.LIVING: "🟢",
    PlayerStatus.DYING: "💀",
}


def msg_pas_en_vocal() -> str: return "Rejoins un salon vocal (ou précise-le) pour gérer un lobby."
def msg_salon_invalide() -> str: return "Salon vocal invalide."
def msg_aucun_lobby() -> str: return "Aucun lobby pour ce salon vocal."
def msg_lobby_existe() -> str: return "Un lobby est déjà en cours sur ce salon vocal."
def msg_permissions_bot(missing: list[str]) -> str: return "Il me manque des permissions sur ce salon vocal : " + ", ".join(missing) + "."
def msg_lobby_arrete(failures: int) -> str:
    base = "Lobby arrêté, voix rétablie pour tous les joueurs."
    return base if not failures else f"{base} ({failures} joueur(s) non mis à jour)"
def msg_bot_ignore() -> str: return "Les bots ne participent pas aux lobbies."
def msg_joueur_inconnu(name: str) -> str: return f"{name} ne fait pas partie du lobby."
def msg_joueur_tue(player: Player) -> str: return f"💀 {player.name} est mort."
def msg_joueur_ressuscite(player: Player) -> str: return f"🟢 {player.name} est de retour."


def fmt_transition(result: TransitionResult) -> str:
    line = f"Phase: **{PHASE_LABELS[result.phase]}** ({result.updated} joueur(s) mis à jour)"
    if result.skipped:
        line += f", {result.skipped} hors vocal"
    if result.failures:
        names = ", ".join(f.player.name for f in result.failures[:10])
        line += f"\n⚠️ Echec pour {len(result.failures)} joueur(s): {names}"
    return line


def fmt_player_line(player: Player) -> str:
    return f"{STATUS_ICONS[player.status]} {player.name}"


def build_lobby_embed(lobby) -> discord.Embed:
    e = discord.Embed(
        title=f"Lobby : {PHASE_LABELS[lobby.phase]}",
        color=PHASE_COLORS[lobby.phase],
        timestamp=discord.utils.utcnow(),
    )
    e.add_field(name="Salon vocal", value=f"<#{lobby.voice_channel_id}>", inline=True)
    if lobby.text_channel_id:
        e.add_field(name="Salon texte", value=f"<#{lobby.text_channel_id}>", inline=True)
    players = lobby.players
    lines = [fmt_player_line(p) for p in players[:25]]
    if len(players) > 25:
        lines.append(f"… et {len(players) - 25} autre(s)")
    e.add_field(name=f"Joueurs ({len(players)})", value="\n".join(lines) or "Aucun joueur", inline=False)
    return e


__all__ = [name for name in list(globals().keys()) if name.startswith(("msg_", "fmt_", "build_"))] + [
    "PHASE_LABELS", "PHASE_COLORS",
]
