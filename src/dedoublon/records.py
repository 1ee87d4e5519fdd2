"""Représentation des enregistrements : DataFrame à index positionnel."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Union

import pandas as pd


# Valeur scalaire d'un enregistrement
Value = Union[str, int, float, None]


def _to_value(val: Any) -> Value:
    if val is None or (pd.api.types.is_scalar(val) and pd.isna(val)):
        return None
    if isinstance(val, bool):
        return str(val)
    if isinstance(val, (str, int, float)):
        return val
    # types numpy / pandas : on passe par item() quand il existe
    item = getattr(val, "item", None)
    if callable(item):
        try:
            inner = item()
        except (TypeError, ValueError):
            return str(val)
        if isinstance(inner, (str, int, float)) and not isinstance(inner, bool):
            return inner
    return str(val)


def records_to_frame(records: pd.DataFrame | Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    """
    Construit une copie privée des enregistrements.

    Accepte un DataFrame ou une séquence de dicts (les clés absentes valent None).
    L'index est remis à 0..n-1 : c'est l'identifiant stable de chaque
    enregistrement pour toute la durée du job.
    """
    if isinstance(records, pd.DataFrame):
        df = records.reset_index(drop=True).astype(object)
    else:
        rows = list(records)
        columns: list[str] = []
        seen: set[str] = set()
        for row in rows:
            for key in row:
                if key not in seen:
                    seen.add(key)
                    columns.append(key)
        df = pd.DataFrame(rows, columns=columns, dtype=object)

    data = {col: [_to_value(v) for v in df[col].tolist()] for col in df.columns}
    return pd.DataFrame(data, columns=list(df.columns), index=pd.RangeIndex(len(df)), dtype=object)


def frame_rows(df: pd.DataFrame) -> list[dict[str, Value]]:
    """Liste de dicts (un par enregistrement), dans l'ordre de l'index."""
    return df.to_dict(orient="records")
