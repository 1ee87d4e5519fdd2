"""Normalisation de texte, codes postaux et nombres."""

from __future__ import annotations

import math
import re
import unicodedata
from typing import Any


def _remove_diacritics(s: str) -> str:
    """Retire les diacritiques (accents) d'une chaîne."""
    nfd = unicodedata.normalize("NFD", s)
    return "".join(c for c in nfd if unicodedata.category(c) != "Mn")


def is_missing(val: Any) -> bool:
    """True si la valeur est nulle, NaN ou une chaîne vide (après strip)."""
    if val is None:
        return True
    if isinstance(val, float) and math.isnan(val):
        return True
    if isinstance(val, str) and not val.strip():
        return True
    return False


def norm_text(
    s: str | float | int | None,
    *,
    lower: bool = True,
    strip: bool = True,
    remove_diacritics: bool = False,
) -> str:
    """
    Normalise un texte : NFKC, espaces multiples → espace simple, lower, strip.

    Args:
        s: Valeur à normaliser (convertie en str si numérique).
        lower: Mettre en minuscules.
        strip: Supprimer espaces en début/fin.
        remove_diacritics: Supprimer les accents.

    Returns:
        Chaîne normalisée (vide pour None / NaN).
    """
    if s is None or (isinstance(s, float) and (s != s or s == float("inf"))):
        return ""
    text = str(s).strip() if strip else str(s)
    text = unicodedata.normalize("NFKC", text)
    text = re.sub(r"\s+", " ", text)
    if strip:
        text = text.strip()
    if lower:
        text = text.lower()
    if remove_diacritics:
        text = _remove_diacritics(text)
    return text


def norm_postcode(s: str | float | int | None, prefix_length: int | None = None) -> str:
    """
    Normalise un code postal : majuscules, sans espaces.

    Avec prefix_length, ne garde que les N premiers caractères. C'est une
    approximation volontaire : "SW1A 1AA" et "SW1P 3BT" partagent le préfixe
    "SW1" et tombent dans le même bloc.
    """
    if is_missing(s):
        return ""
    text = unicodedata.normalize("NFKC", str(s)).upper()
    text = re.sub(r"\s+", "", text)
    if prefix_length is not None:
        text = text[:prefix_length]
    return text


def parse_number(val: Any) -> float:
    """
    Convertit une valeur en float (virgule décimale acceptée).

    Raises:
        ValueError: Si la valeur n'est pas numérique.
    """
    if isinstance(val, bool):
        raise ValueError(f"valeur booléenne non numérique: {val!r}")
    if isinstance(val, (int, float)):
        number = float(val)
    else:
        text = str(val).strip().replace(" ", "").replace(" ", "")
        if text.count(",") == 1 and "." not in text:
            text = text.replace(",", ".")
        number = float(text)
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"valeur numérique non finie: {val!r}")
    return number


def safe_str(val: Any) -> str:
    """Convertit une valeur en chaîne pour affichage/stockage."""
    if val is None or (isinstance(val, float) and (val != val or val == float("inf"))):
        return ""
    return str(val)
