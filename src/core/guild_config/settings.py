"""
Paramètres de guilde disponibles.

Chaque paramètre est un membre de l'énumération `Setting` associé à un
descripteur (valeur par défaut, setter de validation, getter de présentation).
La table des descripteurs est vérifiée à l'import : ajouter un membre sans
descripteur échoue immédiatement.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from core.exceptions import InvalidSettingValue, UnknownSetting

_PREFIX_SPLIT = re.compile(r"[\s|]+")


@dataclass(frozen=True)
class SettingDescriptor:
    default: Any
    setter: Optional[Callable[[Any], Any]] = None
    getter: Optional[Callable[[Any], Any]] = None
    description: str = ""

    def store(self, value: Any) -> Any:
        return self.setter(value) if self.setter else value

    def present(self, value: Any) -> Any:
        return self.getter(value) if self.getter else value


class Setting(str, Enum):
    PREFIX = "prefix"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def resolve(cls, key: "Setting | str") -> "Setting":
        if isinstance(key, cls):
            return key
        if isinstance(key, str) and key.strip():
            try:
                return cls(key.strip().lower())
            except ValueError:
                pass
        raise UnknownSetting(key)

    @property
    def descriptor(self) -> SettingDescriptor:
        return DESCRIPTORS[self]


def parse_prefix(value: Any) -> str:
    """Normalise une liste de préfixes : `"!Sau | !s"` -> `"!sau|!s"`."""
    if not isinstance(value, str):
        raise InvalidSettingValue("Le préfixe doit être une chaîne de caractères.")
    parts = [p for p in _PREFIX_SPLIT.split(value.lower().strip()) if p]
    if not parts:
        raise InvalidSettingValue("Impossible de définir un préfixe de commande vide.")
    return "|".join(parts)


def split_prefix(value: str) -> list[str]:
    return [p for p in value.split("|") if p]


DESCRIPTORS: Dict[Setting, SettingDescriptor] = {
    Setting.PREFIX: SettingDescriptor(
        default="!sau|!s",
        setter=parse_prefix,
        getter=split_prefix,
        description="Préfixes des commandes texte (séparés par | ou des espaces)",
    ),
}

_missing = [s.value for s in Setting if s not in DESCRIPTORS]
if _missing:
    raise RuntimeError(f"Paramètres sans descripteur: {_missing}")


__all__ = ["Setting", "SettingDescriptor", "DESCRIPTORS", "parse_prefix", "split_prefix"]
