"""
Textes pour les commandes de configuration de guilde (`/config`, `prefix`).
"""
from __future__ import annotations

from typing import Any


def fmt_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(f"`{v}`" for v in value) or "(vide)"
    return f"`{value}`"


def fmt_setting_line(key: str, value: Any, overridden: bool) -> str:
    suffix = "" if overridden else " (défaut)"
    return f"**{key}**: {fmt_value(value)}{suffix}"


def msg_hors_guilde() -> str: return "A exécuter dans une guilde."
def msg_valeur_definie(key: str, value: Any) -> str: return f"{key} = {fmt_value(value)}"
def msg_valeur_reinitialisee(key: str, value: Any) -> str: return f"{key} réinitialisé: {fmt_value(value)}"
def msg_erreur(error: Exception) -> str: return f"❌ {error}"

__all__ = [name for name in globals().keys() if name.startswith('msg_') or name.startswith('fmt_')]
