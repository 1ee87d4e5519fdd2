"""Tests du module config."""

from pathlib import Path

import pytest

from dedoublon.config import ConfigError, DedupeConfig, MappedColumn


def _base(**overrides: object) -> dict:
    d: dict = {"columns": [{"source_col": "nom", "comparator": "fuzzy"}]}
    d.update(overrides)
    return d


def test_config_from_dict_defaults() -> None:
    config = DedupeConfig.from_dict(_base())
    assert config.threshold == 0.8
    assert config.blocking_columns is None
    assert config.neutral_score == 0.5
    assert config.postcode_prefix_length == 3
    assert config.mode == "local"
    assert config.columns[0].weight == 1.0


def test_config_round_trip(tmp_path: Path) -> None:
    """Une configuration sauvegardée se recharge à l'identique."""
    config = DedupeConfig.from_dict(
        _base(
            threshold=0.9,
            blocking_columns=["nom"],
            optimize=True,
            data_source="database",
            splink={"base_url": "http://splink:5000", "unique_id_column": "id"},
        )
    )
    path = tmp_path / "saved.json"
    config.save(path)
    assert DedupeConfig.load(path) == config


def test_mapped_column_invalid_comparator() -> None:
    with pytest.raises(ConfigError, match="comparator invalide"):
        MappedColumn.from_dict({"source_col": "a", "comparator": "soundex"})


def test_mapped_column_negative_weight() -> None:
    with pytest.raises(ConfigError, match="weight doit être >= 0"):
        MappedColumn.from_dict({"source_col": "a", "weight": -1})


def test_mapped_column_zero_weight_allowed() -> None:
    assert MappedColumn.from_dict({"source_col": "a", "weight": 0}).weight == 0.0


def test_mapped_column_tolerance_positive() -> None:
    with pytest.raises(ConfigError, match="tolerance"):
        MappedColumn.from_dict({"source_col": "a", "comparator": "numeric", "tolerance": 0})


def test_config_no_match_columns() -> None:
    with pytest.raises(ConfigError, match="Aucune colonne"):
        DedupeConfig.from_dict({"columns": [{"source_col": "a", "role": "ignore"}]})
    with pytest.raises(ConfigError, match="Aucune colonne"):
        DedupeConfig.from_dict({"columns": [{"source_col": "a", "comparator": "none"}]})


@pytest.mark.parametrize("threshold", [0, -0.1, 1.5])
def test_config_invalid_threshold(threshold: float) -> None:
    with pytest.raises(ConfigError, match="threshold"):
        DedupeConfig.from_dict(_base(threshold=threshold))


def test_config_threshold_one_allowed() -> None:
    assert DedupeConfig.from_dict(_base(threshold=1)).threshold == 1.0


def test_config_empty_blocking_column() -> None:
    with pytest.raises(ConfigError, match="blocking vide"):
        DedupeConfig.from_dict(_base(blocking_columns=[" "]))


def test_config_blocking_column_not_mapped() -> None:
    with pytest.raises(ConfigError, match="absente du mapping"):
        DedupeConfig.from_dict(_base(blocking_columns=["ville"]))


def test_config_blocking_column_may_be_ignored_role() -> None:
    config = DedupeConfig.from_dict(
        {
            "columns": [
                {"source_col": "nom"},
                {"source_col": "cp", "role": "ignore"},
            ],
            "blocking_columns": ["cp"],
        }
    )
    assert config.blocking_columns == ["cp"]
    assert [c.source_col for c in config.match_columns] == ["nom"]


def test_config_invalid_data_source_and_mode() -> None:
    with pytest.raises(ConfigError, match="data_source invalide"):
        DedupeConfig.from_dict(_base(data_source="ftp"))
    with pytest.raises(ConfigError, match="mode invalide"):
        DedupeConfig.from_dict(_base(mode="remote"))


def test_config_poll_interval_bounds() -> None:
    with pytest.raises(ConfigError, match="poll_interval"):
        DedupeConfig.from_dict(_base(poll_interval=0))
