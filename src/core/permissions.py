"""
Vérification des permissions Discord via bitmask.

Deux usages :
- côté auteur : `require_perms` (commandes slash) et `has_perms` (commandes
  texte) contrôlent l'accès aux réglages de guilde (« Gérer le serveur »).
- côté bot : `missing_voice_perms` indique si le bot peut muter / rendre sourds
  les membres d'un salon vocal, condition nécessaire pour animer un lobby.

Rappel : `discord.Permissions.value` contient les bits cumulés, un sous-ensemble
se teste via `(current & required) == required`.
"""
from __future__ import annotations

from typing import Callable, TypeVar, Awaitable, Any
import functools
import discord

T = TypeVar("T", bound=Callable[..., Awaitable[Any]])

MANAGE_GUILD = 0x00000020
MUTE_MEMBERS = 0x00400000
DEAFEN_MEMBERS = 0x00800000

PERMISSION_NAMES = {
    MANAGE_GUILD: "Gérer le serveur",
    MUTE_MEMBERS: "Rendre muets des membres",
    DEAFEN_MEMBERS: "Mettre en sourdine des membres",
}


def has_perms(member, bits: int) -> bool:
    """Vrai si le membre possède tous les bits demandés dans la guilde."""
    perms = getattr(member, "guild_permissions", None)
    if perms is None:
        return False
    return (perms.value & bits) == bits


def missing_voice_perms(channel) -> list[str]:
    """Noms des permissions vocales qui manquent au bot dans `channel`."""
    guild = getattr(channel, "guild", None)
    me = getattr(guild, "me", None)
    if me is None:
        return [PERMISSION_NAMES[bit] for bit in (MUTE_MEMBERS, DEAFEN_MEMBERS)]
    value = channel.permissions_for(me).value
    return [PERMISSION_NAMES[bit] for bit in (MUTE_MEMBERS, DEAFEN_MEMBERS) if not value & bit]


def require_perms(bits: int, *, ephemeral: bool = True, message: str | None = None):
    """
    Décorateur de commande slash : exige tous les bits `bits` chez l'auteur.

    En cas de refus (hors guilde ou permission absente), répond à l'interaction
    (ou envoie un followup si elle est déjà acquittée) sans exécuter la commande.
    """
    names = ", ".join(name for bit, name in PERMISSION_NAMES.items() if bits & bit)
    refusal = message or f"Permission requise : {names or bits}."

    def decorator(func: T) -> T:
        @functools.wraps(func)
        async def wrapper(interaction: discord.Interaction, *args, **kwargs):  # type: ignore[misc]
            if interaction.guild is None or not has_perms(interaction.user, bits):
                if interaction.response.is_done():
                    await interaction.followup.send(refusal, ephemeral=ephemeral)
                else:
                    await interaction.response.send_message(refusal, ephemeral=ephemeral)
                return  # type: ignore[return-value]
            return await func(interaction, *args, **kwargs)
        return wrapper  # type: ignore[return-value]
    return decorator

__all__ = ["require_perms", "has_perms", "missing_voice_perms", "MANAGE_GUILD"]
