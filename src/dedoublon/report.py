"""Génération du rapport de dédoublonnage."""

from __future__ import annotations

from datetime import datetime

import pandas as pd

from dedoublon import __version__
from dedoublon.config import DedupeConfig
from dedoublon.result import DedupeResult


def build_report_df(
    result: DedupeResult,
    config: DedupeConfig,
) -> pd.DataFrame:
    """
    Construit le DataFrame du rapport (colonnes Key / Value).

    Contient : comptages, clusters, paramètres, mapping, source de données,
    horodatage, version.
    """
    dup_clusters = result.duplicate_clusters
    largest = max((c.size for c in dup_clusters), default=1 if result.clusters else 0)

    rows = [
        ("Metric", "Value"),
        ("nb_original_rows", result.original_rows),
        ("nb_unique_rows", result.unique_rows),
        ("nb_duplicate_rows", result.duplicate_rows),
        ("nb_clusters_with_duplicates", len(dup_clusters)),
        ("largest_cluster", largest),
        ("processing_time_ms", round(result.processing_time_ms, 1)),
        ("", ""),
        ("Parameters", ""),
        ("threshold", config.threshold),
        ("blocking_columns", ", ".join(config.blocking_columns or []) or "(aucune, comparaison exhaustive)"),
        ("optimize", config.optimize),
        ("neutral_score", config.neutral_score),
        ("mode", config.mode),
        ("data_source", result.data_source),
        ("", ""),
        ("Columns", ""),
    ]
    for i, c in enumerate(config.columns):
        rows.append((f"column_{i}", f"{c.source_col} role={c.role} m={c.comparator} w={c.weight}"))

    rows.extend(
        [
            ("", ""),
            ("job_id", result.job_id or ""),
            ("start_time", result.start_time.isoformat() if result.start_time else ""),
            ("timestamp", datetime.now().isoformat()),
            ("version", __version__),
        ]
    )

    return pd.DataFrame(rows, columns=["Key", "Value"])


def print_report_console(result: DedupeResult) -> None:
    """Affiche un résumé du rapport en console."""
    dup_clusters = result.duplicate_clusters

    print("\n=== Dedoublon Report ===")
    print(f"  Lignes d'origine:   {result.original_rows}")
    print(f"  Lignes uniques:     {result.unique_rows}")
    print(f"  Doublons:           {result.duplicate_rows}")
    print(f"  Clusters (> 1):     {len(dup_clusters)}")
    print(f"  Source:             {result.data_source}")
    print(f"  Durée (ms):         {result.processing_time_ms:.0f}")
    print(f"  Version:            {__version__}")
    print(f"  Timestamp:          {datetime.now().isoformat()}")
    print("========================\n")
