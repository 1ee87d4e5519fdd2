"""Fixtures partagées."""

import logging

import pandas as pd
import pytest
import structlog

from dedoublon.config import DedupeConfig, MappedColumn

structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))


@pytest.fixture
def people() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "nom": ["Dupont", "Martin", "Dupont", "Bernard", "Martin"],
            "prenom": ["Jean", "Claire", "Jean", "Paul", "Clara"],
            "code_postal": ["75001", "69002", "75001", "13001", "69002"],
            "age": [40, 31, 40, 55, 31],
        }
    )


@pytest.fixture
def people_config() -> DedupeConfig:
    return DedupeConfig(
        columns=[
            MappedColumn("nom", "fuzzy", 2.0),
            MappedColumn("prenom", "fuzzy", 1.0),
            MappedColumn("code_postal", "exact", 1.0),
            MappedColumn("age", "numeric", 1.0, tolerance=5.0),
        ],
        threshold=0.8,
        blocking_columns=["code_postal"],
    )
