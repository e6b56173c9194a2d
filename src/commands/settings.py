"""
Groupe de commandes slash `/config` (show, set, reset).

Lecture libre ; écriture réservée aux membres ayant « Gérer le serveur ».
"""
import logging

import discord
from discord import app_commands

from core.exceptions import SettingError
from core.guild_config import GuildConfigCache, Setting
from core.permissions import require_perms, MANAGE_GUILD
from views import settings as settings_view

logger = logging.getLogger(__name__)

config_group = app_commands.Group(name="config", description="Paramètres du bot pour ce serveur", guild_only=True)

SETTING_CHOICES = [
    app_commands.Choice(name=f"{s.value}: {s.descriptor.description}"[:100], value=s.value) for s in Setting
]


def get_cache(client: discord.Client) -> GuildConfigCache:
    cache = getattr(client, "guild_configs", None)
    if cache is None:
        raise RuntimeError("Cache de configuration non initialisé")
    return cache  # type: ignore


@config_group.command(name="show", description="Afficher les paramètres du serveur")
async def config_show(interaction: discord.Interaction):
    if not interaction.guild:
        await interaction.response.send_message(settings_view.msg_hors_guilde(), ephemeral=True)
        return
    cfg = await get_cache(interaction.client).load(interaction.guild.id)
    lines = [
        settings_view.fmt_setting_line(key, value, cfg.is_overridden(key))
        for key, value in cfg.to_dict().items()
    ]
    await interaction.response.send_message("\n".join(lines), ephemeral=True)


@config_group.command(name="set", description="Modifier un paramètre")
@app_commands.describe(cle="Paramètre", valeur="Nouvelle valeur")
@app_commands.choices(cle=SETTING_CHOICES)
@require_perms(MANAGE_GUILD, message="Permission « Gérer le serveur » requise.")
async def config_set(interaction: discord.Interaction, cle: app_commands.Choice[str], valeur: str):
    cfg = await get_cache(interaction.client).load(interaction.guild.id)  # type: ignore[union-attr]
    try:
        value = cfg.set(cle.value, valeur)
    except SettingError as exc:
        await interaction.response.send_message(settings_view.msg_erreur(exc), ephemeral=True)
        return
    logger.info("Guilde %s: %s modifié par %s", cfg.id, cle.value, interaction.user.id)
    await interaction.response.send_message(settings_view.msg_valeur_definie(cle.value, value), ephemeral=True)


@config_group.command(name="reset", description="Revenir à la valeur par défaut")
@app_commands.describe(cle="Paramètre")
@app_commands.choices(cle=SETTING_CHOICES)
@require_perms(MANAGE_GUILD, message="Permission « Gérer le serveur » requise.")
async def config_reset(interaction: discord.Interaction, cle: app_commands.Choice[str]):
    cfg = await get_cache(interaction.client).load(interaction.guild.id)  # type: ignore[union-attr]
    try:
        value = cfg.reset(cle.value)
    except SettingError as exc:
        await interaction.response.send_message(settings_view.msg_erreur(exc), ephemeral=True)
        return
    await interaction.response.send_message(settings_view.msg_valeur_reinitialisee(cle.value, value), ephemeral=True)


def register(bot: discord.Client):
    try:
        bot.tree.add_command(config_group)
    except Exception:
        logger.exception("Echec enregistrement commandes config")

__all__ = ["register", "get_cache"]
