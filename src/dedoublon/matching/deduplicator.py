"""Moteur de dédoublonnage local : blocking, comparaison, clusters, assemblage."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd
import structlog

from dedoublon.config import DedupeConfig
from dedoublon.matching.blockers import build_blocks, count_block_pairs
from dedoublon.matching.clustering import build_clusters
from dedoublon.matching.comparator import PairwiseComparator
from dedoublon.progress import (
    BLOCKING_DONE,
    CLUSTERING_DONE,
    COMPARISON_DONE,
    CancellationToken,
    ProgressEmitter,
)
from dedoublon.records import frame_rows, records_to_frame
from dedoublon.result import DedupeResult, Timings, assemble_result

logger = structlog.get_logger("dedoublon.matching.deduplicator")


class Deduplicator:
    """Moteur de dédoublonnage d'un jeu d'enregistrements."""

    def __init__(self, config: DedupeConfig) -> None:
        self.config = config
        self.columns = config.columns
        self.match_columns = config.match_columns
        self.threshold = config.threshold
        self.neutral_score = config.neutral_score

    def run(
        self,
        records: pd.DataFrame | Sequence[Mapping[str, Any]],
        *,
        emitter: ProgressEmitter | None = None,
        cancel_token: CancellationToken | None = None,
        job_id: str | None = None,
        timings: Timings | None = None,
    ) -> DedupeResult:
        """
        Exécute le pipeline complet et retourne le résultat.

        Les jalons de progression (non terminaux) sont envoyés à emitter ;
        l'état final (completed / failed / cancelled) est à la charge de l'appelant.

        Raises:
            JobCancelled: Si l'annulation est demandée entre deux blocs ou étapes.
        """
        timings = timings or Timings()
        emitter = emitter or ProgressEmitter()
        df = records_to_frame(records)
        n = len(df)
        if emitter.total_records is None:
            emitter.total_records = n

        def check_cancel() -> None:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

        emitter.processing(0, f"Démarrage du dédoublonnage de {n} enregistrement(s)...", stage="initialization")
        check_cancel()

        blocks = build_blocks(df, self.columns, self.config)
        candidate_pairs = count_block_pairs(blocks)
        emitter.processing(
            BLOCKING_DONE,
            f"Blocking terminé : {len(blocks)} bloc(s), {candidate_pairs} paire(s) candidate(s)",
            stage="blocking",
        )
        logger.info("blocking_done", job_id=job_id, records=n, blocks=len(blocks), candidate_pairs=candidate_pairs)

        rows = frame_rows(df)
        comparator = PairwiseComparator(self.match_columns, self.threshold, self.neutral_score)
        span = COMPARISON_DONE - BLOCKING_DONE

        def on_block(done: int, total: int, compared: int) -> None:
            pct = BLOCKING_DONE + span * done / total
            if int(pct) > int(emitter.percentage):
                emitter.processing(
                    pct,
                    f"Comparaison des paires : bloc {done}/{total} ({compared} paire(s))",
                    stage="comparison",
                )

        outcome = comparator.compare_blocks(rows, blocks, cancel_token=cancel_token, on_block=on_block)
        emitter.processing(
            COMPARISON_DONE,
            f"Comparaison terminée : {outcome.pairs_compared} paire(s), {len(outcome.matched)} au-dessus du seuil",
            stage="comparison",
        )
        logger.info(
            "comparison_done",
            job_id=job_id,
            compared=outcome.pairs_compared,
            matched=len(outcome.matched),
        )
        check_cancel()

        clusters = build_clusters(outcome.matched, n, rows=rows, columns=self.match_columns)
        n_dup_clusters = sum(1 for c in clusters if c.size > 1)
        emitter.processing(
            CLUSTERING_DONE,
            f"Regroupement terminé : {len(clusters)} cluster(s), dont {n_dup_clusters} avec doublons",
            stage="clustering",
        )
        check_cancel()

        result = assemble_result(df, clusters, timings, job_id=job_id, data_source=self.config.data_source)
        logger.info(
            "dedupe_done",
            job_id=job_id,
            original_rows=result.original_rows,
            unique_rows=result.unique_rows,
            duplicate_rows=result.duplicate_rows,
            processing_time_ms=round(result.processing_time_ms, 1),
        )
        return result
