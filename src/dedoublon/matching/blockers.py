"""Blocking : regroupe les enregistrements par clé bon marché pour limiter les comparaisons."""

from __future__ import annotations

import pandas as pd
import structlog

from dedoublon.config import DedupeConfig, MappedColumn
from dedoublon.normalize import norm_postcode, norm_text

logger = structlog.get_logger("dedoublon.matching.blockers")

UNIVERSAL_BLOCK = "*"
EXHAUSTIVE_WARNING_SIZE = 5000

_POSTCODE_HINTS = ("postcode", "post_code", "postal", "zip", "code_postal")


def is_postcode_column(col: str) -> bool:
    """Reconnaît une colonne de code postal à son nom."""
    col_lower = col.lower()
    if col_lower == "cp":
        return True
    return any(hint in col_lower for hint in _POSTCODE_HINTS)


def get_block_key(
    value: object,
    col: str,
    config: DedupeConfig,
    column: MappedColumn | None = None,
) -> str:
    """
    Génère la clé de bloc d'une valeur pour une colonne de blocking.

    - Code postal avec optimize : préfixe normalisé (majuscules, sans espaces,
      N premiers caractères). Approximation assumée : le rappel baisse un peu,
      le nombre de paires beaucoup.
    - Sinon : valeur normalisée complète.
    - Valeur absente : clé vide "<col>=" partagée par les enregistrements sans valeur.
    """
    if config.optimize and is_postcode_column(col):
        norm = norm_postcode(value, config.postcode_prefix_length)
    else:
        remove_diacritics = column.remove_diacritics if column is not None else False
        norm = norm_text(value, remove_diacritics=remove_diacritics)  # type: ignore[arg-type]
    return f"{col}={norm}"


def build_blocks(
    df: pd.DataFrame,
    columns: list[MappedColumn],
    config: DedupeConfig,
) -> dict[str, list[int]]:
    """
    Construit l'index de blocs : block_key -> liste d'indices de lignes.

    Chaque colonne de blocking est une passe indépendante ; deux
    enregistrements peuvent donc partager plusieurs blocs. Sans colonne de
    blocking, un bloc universel contient tous les indices (repli exhaustif,
    coût quadratique).

    Args:
        df: Enregistrements (index positionnel 0..n-1).
        columns: Colonnes mappées.
        config: Configuration du job.

    Returns:
        Dict {block_key: [row_indices]} ; vide si df est vide.
    """
    n = len(df)
    if n == 0:
        return {}

    blocking_columns = [c for c in (config.blocking_columns or []) if c in df.columns]
    missing = [c for c in (config.blocking_columns or []) if c not in df.columns]
    if missing:
        logger.warning("blocking_columns_missing", columns=missing)
    if not blocking_columns:
        if n > EXHAUSTIVE_WARNING_SIZE:
            logger.warning("exhaustive_blocking", records=n, pairs=n * (n - 1) // 2)
        return {UNIVERSAL_BLOCK: list(range(n))}

    by_name = {c.source_col: c for c in columns}
    blocks: dict[str, list[int]] = {}

    for col in blocking_columns:
        column = by_name.get(col)
        for idx, value in enumerate(df[col].tolist()):
            key = get_block_key(value, col, config, column)
            if key not in blocks:
                blocks[key] = []
            blocks[key].append(idx)

    logger.debug("blocks_built", records=n, blocks=len(blocks), columns=blocking_columns)
    return blocks


def count_block_pairs(blocks: dict[str, list[int]]) -> int:
    """Nombre de paires générées par les blocs (doublons inter-blocs compris)."""
    return sum(len(idx) * (len(idx) - 1) // 2 for idx in blocks.values())
