"""Base commune des jobs : état, dernier instantané, résultat."""

from __future__ import annotations

import copy
import random
import string
import time
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from dedoublon.config import DedupeConfig
from dedoublon.progress import COMPLETED, WAITING, DedupeProgress, ProgressEmitter, ProgressListener
from dedoublon.records import records_to_frame
from dedoublon.result import DedupeResult


def new_job_id() -> str:
    """Identifiant de job : job_<millisecondes>_<8 caractères aléatoires>."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
    return f"job_{int(time.time() * 1000)}_{suffix}"


class DedupeJob:
    """
    Cycle de vie d'un job : waiting → processing → completed | failed | cancelled.

    La configuration est validée à la construction (ConfigError levée avant
    tout traitement). Le job travaille sur sa propre copie des enregistrements
    et de la configuration.
    """

    def __init__(
        self,
        records: pd.DataFrame | Sequence[Mapping[str, Any]],
        config: DedupeConfig,
        *,
        listener: ProgressListener | None = None,
        job_id: str | None = None,
    ) -> None:
        config.validate()
        self.config = copy.deepcopy(config)
        self.job_id = job_id or new_job_id()
        self._frame = records_to_frame(records)
        self._emitter = ProgressEmitter(listener, job_id=self.job_id, total_records=len(self._frame))
        self._emitter.emit(WAITING, 0, "En attente de démarrage", stage="waiting", records_processed=0)

    @property
    def progress(self) -> DedupeProgress:
        """Dernier instantané connu (sans interroger le worker ni le service)."""
        assert self._emitter.last is not None
        return self._emitter.last

    @property
    def status(self) -> str:
        return self.progress.status

    @property
    def is_terminal(self) -> bool:
        return self._emitter.terminal

    @property
    def result(self) -> DedupeResult | None:
        """Résultat, disponible uniquement à l'état completed."""
        if self.progress.status != COMPLETED:
            return None
        return self.progress.result

    @property
    def total_records(self) -> int:
        return len(self._frame)
