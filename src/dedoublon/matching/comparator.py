"""Comparaison des paires candidates : score composite pondéré et seuil."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

import structlog

from dedoublon.config import MappedColumn
from dedoublon.matching.schema import ScoredPair
from dedoublon.matching.similarity import ComparisonError, score_field
from dedoublon.progress import CancellationToken
from dedoublon.records import Value

logger = structlog.get_logger("dedoublon.matching.comparator")

# Nombre de paires entre deux vérifications d'annulation dans un même bloc
PAIR_BATCH = 500

# Écart absolu sous lequel un score est considéré égal au seuil (arrondis flottants)
MATCH_TOLERANCE = 1e-9


def is_match(score: float, threshold: float) -> bool:
    """
    Seuil inclusif : un score égal au seuil est un match.

    L'égalité tolère MATCH_TOLERANCE (1e-9) : threshold - 1e-10 est un match,
    threshold - 1e-6 ne l'est pas.
    """
    return score >= threshold or math.isclose(score, threshold, abs_tol=MATCH_TOLERANCE)


def score_record_pair(
    record_a: Mapping[str, Value],
    record_b: Mapping[str, Value],
    columns: list[MappedColumn],
    neutral_score: float = 0.5,
) -> tuple[float, dict[str, float]]:
    """
    Calcule le score composite (pondéré) entre deux enregistrements.

    Score = somme(poids * score_champ) / somme(poids des champs comparés).
    Un champ inexploitable (ComparisonError) reçoit le score neutre au lieu
    de faire échouer la paire. Sans champ comparable, le score vaut 0.

    Returns:
        (score_global, {colonne: score})
    """
    total_weight = 0.0
    weighted_sum = 0.0
    details: dict[str, float] = {}

    for column in columns:
        if not column.is_match_field:
            continue
        col = column.source_col
        a = record_a.get(col)
        b = record_b.get(col)
        try:
            sc = score_field(a, b, column, neutral_score)
        except (ComparisonError, TypeError, ValueError) as e:
            logger.debug("field_not_comparable", column=col, error=str(e))
            sc = neutral_score
        details[col] = sc
        if column.weight <= 0:
            continue
        total_weight += column.weight
        weighted_sum += sc * column.weight

    if total_weight == 0:
        return 0.0, details
    return weighted_sum / total_weight, details


@dataclass
class ComparisonOutcome:
    """Sortie de l'étape de comparaison."""

    matched: list[ScoredPair] = field(default_factory=list)
    pairs_compared: int = 0
    pairs_skipped: int = 0  # déjà vues dans un autre bloc


BlockCallback = Callable[[int, int, int], None]  # (blocs traités, blocs total, paires comparées)


class PairwiseComparator:
    """Score les paires de chaque bloc et garde celles qui atteignent le seuil."""

    def __init__(self, columns: list[MappedColumn], threshold: float, neutral_score: float = 0.5) -> None:
        self.columns = columns
        self.threshold = threshold
        self.neutral_score = neutral_score

    def score(self, rows: list[dict[str, Value]], i: int, j: int) -> ScoredPair:
        a, b = (i, j) if i < j else (j, i)
        score, details = score_record_pair(rows[a], rows[b], self.columns, self.neutral_score)
        return ScoredPair(a, b, score, details)

    def compare_blocks(
        self,
        rows: list[dict[str, Value]],
        blocks: dict[str, list[int]],
        *,
        cancel_token: CancellationToken | None = None,
        on_block: BlockCallback | None = None,
    ) -> ComparisonOutcome:
        """
        Compare toutes les paires de chaque bloc, chaque paire au plus une fois.

        L'annulation est vérifiée avant chaque bloc et toutes les PAIR_BATCH
        paires, jamais au milieu d'une paire.

        Raises:
            JobCancelled: Si le jeton d'annulation est levé.
        """
        outcome = ComparisonOutcome()
        seen: set[tuple[int, int]] = set()
        total_blocks = len(blocks)

        for block_no, indices in enumerate(blocks.values(), start=1):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            for pos, i in enumerate(indices):
                for j in indices[pos + 1 :]:
                    if i == j:
                        continue
                    key = (i, j) if i < j else (j, i)
                    if key in seen:
                        outcome.pairs_skipped += 1
                        continue
                    seen.add(key)

                    scored = self.score(rows, key[0], key[1])
                    outcome.pairs_compared += 1
                    if is_match(scored.score, self.threshold):
                        outcome.matched.append(scored)

                    if cancel_token is not None and outcome.pairs_compared % PAIR_BATCH == 0:
                        cancel_token.raise_if_cancelled()

            if on_block is not None:
                on_block(block_no, total_blocks, outcome.pairs_compared)

        logger.debug(
            "comparison_done",
            blocks=total_blocks,
            compared=outcome.pairs_compared,
            skipped=outcome.pairs_skipped,
            matched=len(outcome.matched),
        )
        return outcome
