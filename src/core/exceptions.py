"""
Exceptions métier du bot.

Centralise les erreurs pour que les couches d'entrée (commandes slash, commandes
préfixées, API HTTP) puissent les traiter de manière uniforme :
- validation : précondition violée, jamais réessayée automatiquement
- introuvable : lobby ou joueur inconnu
- stockage : conflit de révision sur le document
"""
from __future__ import annotations


class LobbyBotError(Exception):
    """Base de toutes les erreurs du bot."""


class ValidationError(LobbyBotError):
    """Précondition violée par l'appelant."""


class NotFoundError(LobbyBotError):
    """Ressource introuvable."""


# ============ Lobby ============

class InvalidLobby(ValidationError):
    """Paramètres de construction d'un lobby invalides."""


class InvalidTransition(ValidationError):
    """Phase inconnue, ou transition vers la phase courante."""

    def __init__(self, target, current=None):
        self.target = target
        self.current = current
        if current is not None and target == current:
            message = f"Le lobby est déjà en phase {current}"
        else:
            message = f"Phase cible invalide: {target!r}"
        super().__init__(message)


class LobbyAlreadyExists(ValidationError):
    def __init__(self, voice_channel_id: int):
        self.voice_channel_id = voice_channel_id
        super().__init__(f"Un lobby existe déjà pour le salon vocal {voice_channel_id}")


class LobbyNotFound(NotFoundError):
    def __init__(self, voice_channel_id):
        self.voice_channel_id = voice_channel_id
        super().__init__("Aucun lobby pour ce salon vocal.")


class PlayerNotFound(NotFoundError):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__("Aucun joueur de ce type pour ce lobby.")


# ============ Configuration ============

class SettingError(ValidationError):
    """Erreur liée à un paramètre de guilde."""


class UnknownSetting(SettingError):
    def __init__(self, key):
        self.key = key
        super().__init__(f"Paramètre inconnu: {key!r}")


class InvalidSettingValue(SettingError):
    pass


# ============ Stockage ============

class DocumentConflict(LobbyBotError):
    """La révision fournie ne correspond plus au document stocké."""

    def __init__(self, doc_id: str, rev=None):
        self.doc_id = doc_id
        self.rev = rev
        super().__init__(f"Conflit de révision pour le document {doc_id!r} (rev={rev})")


__all__ = [
    "LobbyBotError", "ValidationError", "NotFoundError",
    "InvalidLobby", "InvalidTransition", "LobbyAlreadyExists", "LobbyNotFound", "PlayerNotFound",
    "SettingError", "UnknownSetting", "InvalidSettingValue",
    "DocumentConflict",
]
