"""Tests du moteur de dédoublonnage local."""

import pandas as pd
import pytest

from dedoublon.config import DedupeConfig, MappedColumn
from dedoublon.jobs.worker import execute_local
from dedoublon.matching import Deduplicator
from dedoublon.progress import CANCELLED, COMPLETED, CancellationToken, DedupeProgress, JobCancelled, ProgressEmitter
from dedoublon.records import records_to_frame


def test_people_dedupe(people: pd.DataFrame, people_config: DedupeConfig) -> None:
    result = Deduplicator(people_config).run(people)
    assert result.original_rows == 5
    assert result.unique_rows == 3
    assert result.duplicate_rows == 2
    assert [c.members for c in result.clusters] == [(0, 2), (1, 4), (3,)]
    assert result.processed_data["nom"].tolist() == ["Dupont", "Martin", "Bernard"]


def test_identical_records_single_cluster() -> None:
    config = DedupeConfig(columns=[MappedColumn("nom"), MappedColumn("ville")], threshold=0.8)
    records = [{"nom": "Dupont", "ville": "Paris"}, {"nom": "Dupont", "ville": "Paris"}]
    result = Deduplicator(config).run(records)
    assert len(result.clusters) == 1
    assert result.clusters[0].size == 2
    assert result.clusters[0].min_score == pytest.approx(1.0)
    assert result.duplicate_rows == 1
    assert result.unique_rows == result.original_rows - 1


def test_transitive_clustering_end_to_end() -> None:
    """A~B = 0.9, B~C = 0.9, A~C = 0.8 : les trois finissent dans le même cluster au seuil 0.85."""
    config = DedupeConfig(columns=[MappedColumn("v", "numeric", tolerance=10.0)], threshold=0.85)
    result = Deduplicator(config).run([{"v": 0}, {"v": 1}, {"v": 2}])
    assert len(result.clusters) == 1
    assert result.clusters[0].members == (0, 1, 2)
    assert result.clusters[0].canonical_index == 0
    assert result.duplicate_rows == 2


@pytest.mark.parametrize("threshold,expected_clusters", [(0.5, 1), (0.6, 2)])
def test_all_null_record_scores_neutral(threshold: float, expected_clusters: int) -> None:
    config = DedupeConfig(
        columns=[MappedColumn("nom", weight=3.0), MappedColumn("ville", "exact")],
        threshold=threshold,
    )
    result = Deduplicator(config).run([{"nom": None, "ville": None}, {"nom": "Dupont", "ville": "Paris"}])
    assert len(result.clusters) == expected_clusters


def test_threshold_boundary_is_inclusive() -> None:
    columns = [MappedColumn("a", "exact"), MappedColumn("b", "exact")]
    records = [{"a": "x", "b": "y"}, {"a": "x", "b": "z"}]
    assert Deduplicator(DedupeConfig(columns=columns, threshold=0.5)).run(records).unique_rows == 1
    assert Deduplicator(DedupeConfig(columns=columns, threshold=0.51)).run(records).unique_rows == 2


def test_run_is_deterministic(people: pd.DataFrame, people_config: DedupeConfig) -> None:
    first = Deduplicator(people_config).run(people)
    second = Deduplicator(people_config).run(people)
    assert first.clusters == second.clusters
    assert first.processed_data.equals(second.processed_data)


def test_input_records_not_modified(people: pd.DataFrame, people_config: DedupeConfig) -> None:
    before = people.copy()
    Deduplicator(people_config).run(people)
    pd.testing.assert_frame_equal(people, before)


def test_empty_input() -> None:
    config = DedupeConfig(columns=[MappedColumn("nom")])
    result = Deduplicator(config).run([])
    assert (result.original_rows, result.unique_rows, result.duplicate_rows) == (0, 0, 0)
    assert result.clusters == []


def test_progress_milestones(people: pd.DataFrame, people_config: DedupeConfig) -> None:
    seen: list[DedupeProgress] = []
    emitter = ProgressEmitter(seen.append)
    result = execute_local(records_to_frame(people), people_config, emitter, job_id="job_t")
    assert result is not None
    percentages = [p.percentage for p in seen]
    assert percentages == sorted(percentages)
    stages = [p.stage for p in seen]
    assert stages[:2] == ["initialization", "blocking"]
    assert "clustering" in stages
    assert seen[-1].status == COMPLETED
    assert seen[-1].percentage == 100
    assert seen[-1].result is result
    assert sum(1 for p in seen if p.is_terminal) == 1


def test_cancel_after_blocking(people: pd.DataFrame, people_config: DedupeConfig) -> None:
    token = CancellationToken()

    def listener(progress: DedupeProgress) -> None:
        if progress.stage == "blocking":
            token.cancel()

    with pytest.raises(JobCancelled):
        Deduplicator(people_config).run(people, emitter=ProgressEmitter(listener), cancel_token=token)


def test_execute_local_cancelled_discards_result(people: pd.DataFrame, people_config: DedupeConfig) -> None:
    token = CancellationToken()
    seen: list[DedupeProgress] = []

    def listener(progress: DedupeProgress) -> None:
        seen.append(progress)
        if progress.stage == "blocking":
            token.cancel()

    result = execute_local(records_to_frame(people), people_config, ProgressEmitter(listener), token)
    assert result is None
    assert seen[-1].status == CANCELLED
    assert seen[-1].result is None
    assert not any(p.stage == "clustering" for p in seen)


def test_execute_local_failure(
    people: pd.DataFrame, people_config: DedupeConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    def boom(*args: object, **kwargs: object) -> None:
        raise RuntimeError("disque plein")

    monkeypatch.setattr("dedoublon.matching.deduplicator.build_blocks", boom)
    seen: list[DedupeProgress] = []
    result = execute_local(records_to_frame(people), people_config, ProgressEmitter(seen.append))
    assert result is None
    assert seen[-1].status == "failed"
    assert seen[-1].error == "RuntimeError: disque plein"


def test_canonical_ignores_unmatched_columns() -> None:
    """Une colonne ignorée vide ne pèse pas dans le choix du canonique."""
    config = DedupeConfig(
        columns=[MappedColumn("nom", "exact"), MappedColumn("note", role="ignore")],
        threshold=0.8,
    )
    result = Deduplicator(config).run([{"nom": "Dupont", "note": None}, {"nom": "Dupont", "note": "vu"}])
    assert result.clusters[0].canonical_index == 0
    assert result.flagged_data["__is_duplicate"].tolist() == [False, True]
