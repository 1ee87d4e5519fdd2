"""Tests de la représentation des enregistrements."""

import numpy as np
import pandas as pd

from dedoublon.records import frame_rows, records_to_frame


def test_records_from_dicts_missing_keys_are_none() -> None:
    df = records_to_frame([{"a": 1, "b": "x"}, {"a": 2}, {"c": 3.5}])
    assert list(df.columns) == ["a", "b", "c"]
    rows = frame_rows(df)
    assert rows[1]["b"] is None
    assert rows[0]["c"] is None
    assert rows[2]["c"] == 3.5


def test_records_from_dataframe_nan_to_none_and_reindexed() -> None:
    src = pd.DataFrame({"a": [1.0, np.nan], "b": ["x", None]}, index=[10, 20])
    df = records_to_frame(src)
    assert list(df.index) == [0, 1]
    rows = frame_rows(df)
    assert rows[1]["a"] is None
    assert rows[1]["b"] is None
    assert rows[0]["a"] == 1.0


def test_records_numpy_scalars_become_python() -> None:
    src = pd.DataFrame({"n": np.array([1, 2], dtype=np.int64)})
    rows = frame_rows(records_to_frame(src))
    assert rows[0]["n"] == 1
    assert isinstance(rows[0]["n"], int)


def test_records_copy_is_private() -> None:
    src = pd.DataFrame({"a": ["x"]})
    df = records_to_frame(src)
    df.loc[0, "a"] = "y"
    assert src.loc[0, "a"] == "x"


def test_records_empty() -> None:
    assert len(records_to_frame([])) == 0
    assert len(records_to_frame(pd.DataFrame())) == 0
