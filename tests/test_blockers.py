"""Tests du blocking."""

import pandas as pd

from dedoublon.config import DedupeConfig, MappedColumn
from dedoublon.matching.blockers import (
    UNIVERSAL_BLOCK,
    build_blocks,
    count_block_pairs,
    get_block_key,
    is_postcode_column,
)


def _config(**kwargs: object) -> DedupeConfig:
    return DedupeConfig(
        columns=[MappedColumn("nom"), MappedColumn("code_postal", "exact"), MappedColumn("ville")],
        **kwargs,
    )


def test_is_postcode_column() -> None:
    assert is_postcode_column("PostCode")
    assert is_postcode_column("code_postal")
    assert is_postcode_column("ZIP")
    assert is_postcode_column("cp")
    assert not is_postcode_column("nom")


def test_block_key_normalized_value() -> None:
    key = get_block_key("  DUPONT ", "nom", _config())
    assert key == "nom=dupont"


def test_block_key_postcode_optimized_prefix() -> None:
    config = _config(optimize=True, postcode_prefix_length=3)
    assert get_block_key("sw1a 1aa", "code_postal", config) == "code_postal=SW1"
    # sans optimize : valeur complète
    assert get_block_key("sw1a 1aa", "code_postal", _config()) == "code_postal=sw1a 1aa"


def test_block_key_missing_value() -> None:
    assert get_block_key(None, "nom", _config()) == "nom="


def test_build_blocks_empty() -> None:
    assert build_blocks(pd.DataFrame({"nom": []}), [], _config(blocking_columns=["nom"])) == {}


def test_build_blocks_universal_fallback() -> None:
    df = pd.DataFrame({"nom": ["a", "b", "c"]})
    blocks = build_blocks(df, _config().columns, _config())
    assert blocks == {UNIVERSAL_BLOCK: [0, 1, 2]}
    assert count_block_pairs(blocks) == 3


def test_build_blocks_single_column() -> None:
    df = pd.DataFrame({"code_postal": ["75001", "69002", "75001"], "nom": ["a", "b", "c"]})
    config = _config(blocking_columns=["code_postal"])
    blocks = build_blocks(df, config.columns, config)
    assert blocks == {"code_postal=75001": [0, 2], "code_postal=69002": [1]}


def test_build_blocks_several_columns_overlap() -> None:
    """Chaque colonne est une passe : un enregistrement peut être dans plusieurs blocs."""
    df = pd.DataFrame({"code_postal": ["75001", "75001"], "nom": ["Dupont", "Dupont"]})
    config = _config(blocking_columns=["code_postal", "nom"])
    blocks = build_blocks(df, config.columns, config)
    assert blocks == {"code_postal=75001": [0, 1], "nom=dupont": [0, 1]}
    assert count_block_pairs(blocks) == 2


def test_build_blocks_every_record_in_a_block() -> None:
    df = pd.DataFrame({"code_postal": ["75001", None, "", "13001"], "nom": list("abcd")})
    config = _config(blocking_columns=["code_postal"])
    blocks = build_blocks(df, config.columns, config)
    covered = {i for idx in blocks.values() for i in idx}
    assert covered == {0, 1, 2, 3}
    assert blocks["code_postal="] == [1, 2]


def test_build_blocks_postcode_prefix_groups_nearby_codes() -> None:
    df = pd.DataFrame({"code_postal": ["SW1A 1AA", "sw1p 3bt", "N1 9GU"], "nom": list("abc")})
    config = _config(blocking_columns=["code_postal"], optimize=True)
    blocks = build_blocks(df, config.columns, config)
    assert blocks["code_postal=SW1"] == [0, 1]
    assert blocks["code_postal=N19"] == [2]


def test_build_blocks_missing_blocking_column_falls_back() -> None:
    df = pd.DataFrame({"nom": ["a", "b"]})
    config = _config(blocking_columns=["ville"])
    assert build_blocks(df, config.columns, config) == {UNIVERSAL_BLOCK: [0, 1]}
