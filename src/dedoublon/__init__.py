"""Dedoublon - Dédoublonnage d'enregistrements tabulaires (fichiers ou bases)."""

from dedoublon.config import ConfigError, ConfigFileError, DedoublonError, DedupeConfig, MappedColumn
from dedoublon.jobs import DelegatedDedupeJob, ExternalServiceError, LocalDedupeJob, SplinkClient
from dedoublon.matching import Deduplicator
from dedoublon.progress import DedupeProgress
from dedoublon.result import DedupeResult

__all__ = [
    "__version__",
    "DedoublonError",
    "ConfigError",
    "ConfigFileError",
    "ExternalServiceError",
    "DedupeConfig",
    "MappedColumn",
    "Deduplicator",
    "DedupeProgress",
    "DedupeResult",
    "LocalDedupeJob",
    "DelegatedDedupeJob",
    "SplinkClient",
]

__version__ = "0.1.0"
