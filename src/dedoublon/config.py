"""Configuration d'un job de dédoublonnage et chargement du fichier JSON."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

VALID_COMPARATORS = frozenset({"exact", "fuzzy", "partial", "token_set", "numeric", "none"})
VALID_ROLES = frozenset({"match_field", "ignore"})
VALID_DATA_SOURCES = frozenset({"file", "database"})
VALID_MODES = frozenset({"local", "delegated"})


class DedoublonError(Exception):
    """Exception de base pour Dedoublon."""


class ConfigError(DedoublonError, ValueError):
    """Erreur de validation de la configuration."""


class ConfigFileError(DedoublonError):
    """Erreur de chargement du fichier de configuration (fichier absent, JSON invalide)."""


@dataclass
class MappedColumn:
    """Colonne source liée à un rôle, un comparateur et un poids."""

    source_col: str
    comparator: str = "fuzzy"  # exact, fuzzy, partial, token_set, numeric, none
    weight: float = 1.0
    role: str = "match_field"  # match_field, ignore
    tolerance: float = 1.0  # lu uniquement par le comparateur numeric
    normalize: bool = True
    remove_diacritics: bool = False

    @property
    def is_match_field(self) -> bool:
        return self.role == "match_field" and self.comparator != "none"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MappedColumn:
        source_col = d.get("source_col", "")
        comparator = d.get("comparator", "fuzzy")
        role = d.get("role", "match_field")
        weight = float(d.get("weight", 1.0))
        tolerance = float(d.get("tolerance", 1.0))

        if not source_col:
            raise ConfigError("source_col requis pour chaque colonne")
        if weight < 0:
            raise ConfigError(f"weight doit être >= 0 (got {weight})")
        if comparator not in VALID_COMPARATORS:
            raise ConfigError(f"comparator invalide: {comparator!r}. Valides: {sorted(VALID_COMPARATORS)}")
        if role not in VALID_ROLES:
            raise ConfigError(f"role invalide: {role!r}. Valides: {sorted(VALID_ROLES)}")
        if tolerance <= 0:
            raise ConfigError(f"tolerance doit être > 0 (got {tolerance})")

        return cls(
            source_col=source_col,
            comparator=comparator,
            weight=weight,
            role=role,
            tolerance=tolerance,
            normalize=d.get("normalize", True),
            remove_diacritics=d.get("remove_diacritics", False),
        )


@dataclass
class SplinkSettings:
    """Paramètres du service de matching externe (mode delegated)."""

    base_url: str = "http://localhost:5000"
    unique_id_column: str | None = None  # None = colonne "unique_id" générée
    output_dir: str | None = None
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SplinkSettings:
        timeout = float(d.get("timeout", 30.0))
        if timeout <= 0:
            raise ConfigError(f"splink.timeout doit être > 0 (got {timeout})")
        return cls(
            base_url=d.get("base_url", "http://localhost:5000"),
            unique_id_column=d.get("unique_id_column"),
            output_dir=d.get("output_dir"),
            timeout=timeout,
        )


@dataclass
class DedupeConfig:
    """Configuration principale d'un job de dédoublonnage."""

    columns: list[MappedColumn] = field(default_factory=list)
    threshold: float = 0.8
    # None ou [] = bloc universel (comparaison exhaustive de toutes les paires)
    blocking_columns: list[str] | None = None
    optimize: bool = False
    data_source: str = "file"  # file, database (reporting uniquement)

    neutral_score: float = 0.5
    postcode_prefix_length: int = 3

    mode: str = "local"  # local, delegated
    poll_interval: float = 2.0
    splink: SplinkSettings = field(default_factory=SplinkSettings)

    @property
    def match_columns(self) -> list[MappedColumn]:
        return [c for c in self.columns if c.is_match_field]

    def validate(self) -> None:
        """
        Vérifie la cohérence de la configuration.

        Raises:
            ConfigError: Aucune colonne comparable, seuil invalide, colonne de
                blocking vide ou absente du mapping, paramètres hors bornes.
        """
        if not self.match_columns:
            raise ConfigError("Aucune colonne à comparer (role=match_field et comparator != none)")
        if not 0 < self.threshold <= 1:
            raise ConfigError(f"threshold doit être dans ]0, 1] (got {self.threshold})")
        if not 0 <= self.neutral_score <= 1:
            raise ConfigError(f"neutral_score doit être dans [0, 1] (got {self.neutral_score})")
        if self.postcode_prefix_length < 1:
            raise ConfigError(f"postcode_prefix_length doit être >= 1 (got {self.postcode_prefix_length})")
        if self.data_source not in VALID_DATA_SOURCES:
            raise ConfigError(f"data_source invalide: {self.data_source!r}. Valides: {sorted(VALID_DATA_SOURCES)}")
        if self.mode not in VALID_MODES:
            raise ConfigError(f"mode invalide: {self.mode!r}. Valides: {sorted(VALID_MODES)}")
        if not 0.1 <= self.poll_interval <= 60:
            raise ConfigError(f"poll_interval doit être entre 0.1 et 60 s (got {self.poll_interval})")

        mapped = {c.source_col for c in self.columns}
        for col in self.blocking_columns or []:
            if not col or not col.strip():
                raise ConfigError("Colonne de blocking vide")
            if col not in mapped:
                raise ConfigError(f"Colonne de blocking absente du mapping: {col!r}")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DedupeConfig:
        columns = [MappedColumn.from_dict(c) for c in d.get("columns", [])]
        blocking_columns = d.get("blocking_columns")
        if blocking_columns is not None and not isinstance(blocking_columns, list):
            raise ConfigError(f"blocking_columns doit être une liste (got {type(blocking_columns).__name__})")

        config = cls(
            columns=columns,
            threshold=float(d.get("threshold", 0.8)),
            blocking_columns=blocking_columns,
            optimize=bool(d.get("optimize", False)),
            data_source=d.get("data_source", "file"),
            neutral_score=float(d.get("neutral_score", 0.5)),
            postcode_prefix_length=int(d.get("postcode_prefix_length", 3)),
            mode=d.get("mode", "local"),
            poll_interval=float(d.get("poll_interval", 2.0)),
            splink=SplinkSettings.from_dict(d.get("splink", {})),
        )
        config.validate()
        return config

    def to_dict(self) -> dict[str, Any]:
        """Sérialise la configuration (format accepté par from_dict)."""
        return asdict(self)

    @classmethod
    def load(cls, path: str | Path) -> DedupeConfig:
        """
        Charge une configuration sauvegardée depuis un fichier JSON.

        Raises:
            ConfigFileError: Si le fichier est absent ou le JSON invalide.
            ConfigError: Si la configuration est invalide.
        """
        path = Path(path).resolve()
        if not path.exists():
            raise ConfigFileError(f"Fichier de configuration introuvable: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                d = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"JSON invalide dans {path}: {e}") from e
        except OSError as e:
            raise ConfigFileError(f"Impossible de lire {path}: {e}") from e

        if not isinstance(d, dict):
            raise ConfigFileError(f"Fichier de configuration invalide: {path} doit contenir un objet JSON")

        return cls.from_dict(d)

    def save(self, path: str | Path) -> None:
        """Écrit la configuration dans un fichier JSON."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
