"""Fonctions de similarité par champ, scores dans [0, 1]."""

from __future__ import annotations

from rapidfuzz import fuzz

from dedoublon.config import DedoublonError, MappedColumn
from dedoublon.normalize import is_missing, norm_text, parse_number, safe_str
from dedoublon.records import Value


class ComparisonError(DedoublonError):
    """Valeur inexploitable pour le comparateur (ex. texte pour numeric)."""


def _prepare_text(val: Value, column: MappedColumn) -> str:
    if column.normalize:
        return norm_text(val, remove_diacritics=column.remove_diacritics)
    return safe_str(val)


def exact_similarity(s: str, t: str) -> float:
    return 1.0 if s == t else 0.0


def fuzzy_similarity(s: str, t: str) -> float:
    """Distance d'édition normalisée (Indel) ramenée dans [0, 1]."""
    return fuzz.ratio(s, t) / 100.0


def token_set_similarity(s: str, t: str) -> float:
    """Recouvrement des ensembles de mots, insensible à l'ordre."""
    return fuzz.token_set_ratio(s, t) / 100.0


def partial_similarity(s: str, t: str) -> float:
    if s in t or t in s:
        return 1.0
    return fuzz.partial_ratio(s, t) / 100.0


def numeric_similarity(a: Value, b: Value, tolerance: float) -> float:
    """
    1 - min(1, |a - b| / tolerance).

    Raises:
        ComparisonError: Si l'une des valeurs n'est pas numérique.
    """
    try:
        x = parse_number(a)
        y = parse_number(b)
    except (TypeError, ValueError) as e:
        raise ComparisonError(f"valeur non numérique: {a!r} / {b!r}") from e
    return 1.0 - min(1.0, abs(x - y) / tolerance)


def score_field(a: Value, b: Value, column: MappedColumn, neutral_score: float = 0.5) -> float:
    """
    Calcule le score (0-1) d'un champ selon le comparateur de la colonne.

    Une valeur manquante d'un côté ou de l'autre donne neutral_score : les
    données lacunaires ne sont pas traitées comme un désaccord.

    Raises:
        ComparisonError: Si la valeur est inexploitable pour le comparateur.
    """
    if is_missing(a) or is_missing(b):
        return neutral_score

    method = column.comparator

    if method == "numeric":
        return numeric_similarity(a, b, column.tolerance)

    s = _prepare_text(a, column)
    t = _prepare_text(b, column)
    if not s or not t:
        return neutral_score

    if method == "exact":
        return exact_similarity(s, t)

    if method == "token_set":
        return token_set_similarity(s, t)

    if method == "partial":
        return partial_similarity(s, t)

    return fuzzy_similarity(s, t)
