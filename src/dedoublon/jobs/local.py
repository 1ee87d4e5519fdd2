"""Job local : pipeline exécuté dans un thread dédié, progression par file de messages."""

from __future__ import annotations

import queue
import time
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd
import structlog

from dedoublon.config import DedupeConfig
from dedoublon.jobs.base import DedupeJob
from dedoublon.jobs.worker import DedupeWorker
from dedoublon.progress import CancellationToken, DedupeProgress, JobStateError, ProgressListener

logger = structlog.get_logger("dedoublon.jobs.local")

# Attente maximale entre deux vérifications de l'état du worker (s)
_WAIT_SLICE = 0.5


class LocalDedupeJob(DedupeJob):
    """
    Dédoublonnage calculé en local, dans un DedupeWorker.

    Les instantanés produits par le worker transitent par une file et sont
    remis au listener dans le thread de l'appelant, lors de poll() ou wait().
    """

    def __init__(
        self,
        records: pd.DataFrame | Sequence[Mapping[str, Any]],
        config: DedupeConfig,
        *,
        listener: ProgressListener | None = None,
        job_id: str | None = None,
    ) -> None:
        super().__init__(records, config, listener=listener, job_id=job_id)
        self._inbox: queue.Queue[DedupeProgress] = queue.Queue()
        self._cancel_token = CancellationToken()
        self._worker: DedupeWorker | None = None

    def start(self) -> DedupeProgress:
        """
        Lance le worker.

        Raises:
            JobStateError: Si le job a déjà été démarré ou est terminé.
        """
        if self._worker is not None or self.is_terminal:
            raise JobStateError(f"Job {self.job_id} déjà démarré ou terminé (status={self.status})")
        self._emitter.processing(0, "Job démarré", stage="initialization", records_processed=0)
        self._worker = DedupeWorker(
            self._frame,
            self.config,
            self._inbox,
            job_id=self.job_id,
            cancel_token=self._cancel_token,
        )
        self._worker.start()
        logger.info("local_job_started", job_id=self.job_id, records=self.total_records)
        return self.progress

    def _drain(self) -> None:
        while True:
            try:
                snapshot = self._inbox.get_nowait()
            except queue.Empty:
                return
            self._emitter.relay(snapshot)

    def poll(self) -> DedupeProgress:
        """Relaie les instantanés en attente, sans bloquer, et retourne le dernier."""
        self._drain()
        return self.progress

    def wait(self, timeout: float | None = None) -> DedupeProgress:
        """
        Bloque jusqu'à l'état terminal (ou l'expiration de timeout).

        Raises:
            JobStateError: Si le job n'a pas été démarré.
        """
        if self._worker is None and not self.is_terminal:
            raise JobStateError(f"Job {self.job_id} non démarré")
        deadline = None if timeout is None else time.monotonic() + timeout

        while not self.is_terminal:
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                break
            slice_ = _WAIT_SLICE if remaining is None else min(_WAIT_SLICE, remaining)
            try:
                snapshot = self._inbox.get(timeout=slice_)
            except queue.Empty:
                if self._worker is not None and not self._worker.is_alive():
                    self._drain()
                    if not self.is_terminal:
                        logger.error("worker_died", job_id=self.job_id)
                        self._emitter.fail("Le worker s'est arrêté sans état final")
                continue
            self._emitter.relay(snapshot)

        return self.progress

    def cancel(self) -> None:
        """
        Demande l'annulation coopérative.

        Sans effet sur un job terminé. Avant start(), le job passe
        directement à cancelled.
        """
        if self.is_terminal:
            return
        self._cancel_token.cancel()
        if self._worker is None:
            self._emitter.cancel("Job annulé avant démarrage")
            return
        logger.info("local_job_cancel_requested", job_id=self.job_id)

    def run(self, timeout: float | None = None) -> DedupeProgress:
        """start() puis wait()."""
        self.start()
        return self.wait(timeout)
