"""Assemblage du résultat : comptages, données dédoublonnées et données annotées."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import pandas as pd

from dedoublon.config import DedoublonError

if TYPE_CHECKING:
    from dedoublon.matching.schema import Cluster

CLUSTER_ID_COL = "__cluster_id"
IS_DUPLICATE_COL = "__is_duplicate"


@dataclass
class Timings:
    """Horodatage de début d'un job."""

    start_time: datetime = field(default_factory=datetime.now)
    started: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000.0


@dataclass
class DedupeResult:
    """Résultat d'un dédoublonnage."""

    original_rows: int
    unique_rows: int
    duplicate_rows: int
    clusters: list[Cluster]
    processed_data: pd.DataFrame  # un enregistrement (canonique) par cluster
    flagged_data: pd.DataFrame  # tous les enregistrements, annotés
    job_id: str | None = None
    processing_time_ms: float = 0.0
    start_time: datetime | None = None
    data_source: str = "file"

    @property
    def duplicate_clusters(self) -> list[Cluster]:
        return [c for c in self.clusters if c.size > 1]


def _check_partition(clusters: list[Cluster], n: int) -> None:
    seen: set[int] = set()
    for c in clusters:
        for idx in c.members:
            if idx in seen or not 0 <= idx < n:
                raise DedoublonError(f"Clusters incohérents : index {idx} dupliqué ou hors bornes")
            seen.add(idx)
    if len(seen) != n:
        raise DedoublonError(f"Clusters incohérents : {n - len(seen)} enregistrement(s) sans cluster")


def assemble_result(
    df: pd.DataFrame,
    clusters: list[Cluster],
    timings: Timings,
    *,
    job_id: str | None = None,
    data_source: str = "file",
) -> DedupeResult:
    """
    Construit le DedupeResult à partir des clusters.

    processed_data garde le canonique de chaque cluster, flagged_data toutes
    les lignes avec __cluster_id et __is_duplicate ; les deux conservent
    l'ordre d'origine.

    Raises:
        DedoublonError: Si les clusters ne partitionnent pas [0, len(df)).
    """
    n = len(df)
    _check_partition(clusters, n)

    cluster_of = [0] * n
    is_duplicate = [False] * n
    for c in clusters:
        for idx in c.members:
            cluster_of[idx] = c.cluster_id
            is_duplicate[idx] = idx != c.canonical_index

    canonical = sorted(c.canonical_index for c in clusters)
    processed = df.iloc[canonical].copy()

    flagged = df.copy()
    flagged[CLUSTER_ID_COL] = cluster_of
    flagged[IS_DUPLICATE_COL] = is_duplicate

    duplicate_rows = sum(c.size - 1 for c in clusters if c.size > 1)

    return DedupeResult(
        original_rows=n,
        unique_rows=len(clusters),
        duplicate_rows=duplicate_rows,
        clusters=clusters,
        processed_data=processed,
        flagged_data=flagged,
        job_id=job_id,
        processing_time_ms=timings.elapsed_ms(),
        start_time=timings.start_time,
        data_source=data_source,
    )
