"""Progression d'un job : instantanés immuables, émetteur monotone, annulation coopérative."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import structlog

from dedoublon.config import DedoublonError

logger = structlog.get_logger("dedoublon.progress")

WAITING = "waiting"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({COMPLETED, FAILED, CANCELLED})

# Jalons du pipeline local (en %)
BLOCKING_DONE = 10.0
COMPARISON_DONE = 70.0
CLUSTERING_DONE = 85.0


class JobCancelled(DedoublonError):
    """Levée dans le pipeline quand l'annulation a été demandée."""


class JobStateError(DedoublonError):
    """Opération incompatible avec l'état courant du job."""


@dataclass(frozen=True)
class DedupeProgress:
    """Instantané de progression. Chaque émission produit une nouvelle instance."""

    status: str
    percentage: float
    message: str
    error: str | None = None
    result: Any = None  # DedupeResult, uniquement dans l'instantané completed
    stage: str | None = None
    records_processed: int | None = None
    total_records: int | None = None
    job_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


ProgressListener = Callable[[DedupeProgress], None]


def describe_error(exc: BaseException) -> str:
    """Message lisible et non vide pour une exception."""
    text = str(exc).strip()
    name = type(exc).__name__
    return f"{name}: {text}" if text else name


class CancellationToken:
    """Drapeau d'annulation partagé entre l'appelant et le pipeline."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            JobCancelled: Si l'annulation a été demandée.
        """
        if self._event.is_set():
            raise JobCancelled("Annulation demandée")


class ProgressEmitter:
    """
    Convertit les jalons du pipeline en instantanés DedupeProgress.

    - Le pourcentage ne régresse jamais (valeur plancher = dernier émis).
    - Après un instantané terminal (completed, failed, cancelled), plus rien
      n'est émis.
    - Émissions sérialisées par un verrou, listener compris : depuis plusieurs
      threads, le listener reçoit les instantanés dans l'ordre de stockage.
    """

    def __init__(
        self,
        listener: ProgressListener | None = None,
        *,
        job_id: str | None = None,
        total_records: int | None = None,
    ) -> None:
        self._listener = listener
        self.job_id = job_id
        self.total_records = total_records
        self._last: DedupeProgress | None = None
        self._lock = threading.RLock()

    @property
    def last(self) -> DedupeProgress | None:
        return self._last

    @property
    def percentage(self) -> float:
        return self._last.percentage if self._last else 0.0

    @property
    def terminal(self) -> bool:
        return self._last is not None and self._last.is_terminal

    def emit(
        self,
        status: str,
        percentage: float,
        message: str,
        *,
        stage: str | None = None,
        records_processed: int | None = None,
        error: str | None = None,
        result: Any = None,
    ) -> DedupeProgress | None:
        """Émet un instantané ; retourne None si le job est déjà terminé."""
        with self._lock:
            if self.terminal:
                logger.debug("progress_after_terminal_ignored", job_id=self.job_id, status=status)
                return None
            pct = max(self.percentage, min(100.0, max(0.0, float(percentage))))
            snapshot = DedupeProgress(
                status=status,
                percentage=pct,
                message=message,
                error=error,
                result=result,
                stage=stage,
                records_processed=records_processed,
                total_records=self.total_records,
                job_id=self.job_id,
            )
            return self._store(snapshot)

    def relay(self, snapshot: DedupeProgress) -> DedupeProgress | None:
        """Retransmet un instantané reçu d'un worker, avec les mêmes garanties qu'emit()."""
        with self._lock:
            if self.terminal:
                logger.debug("progress_after_terminal_ignored", job_id=self.job_id, status=snapshot.status)
                return None
            if snapshot.percentage < self.percentage:
                snapshot = replace(snapshot, percentage=self.percentage)
            return self._store(snapshot)

    def _store(self, snapshot: DedupeProgress) -> DedupeProgress:
        self._last = snapshot
        if self._listener is not None:
            self._listener(snapshot)
        return snapshot

    def processing(self, percentage: float, message: str, **kwargs: Any) -> DedupeProgress | None:
        return self.emit(PROCESSING, percentage, message, **kwargs)

    def complete(self, message: str, *, result: Any = None) -> DedupeProgress | None:
        return self.emit(
            COMPLETED,
            100.0,
            message,
            stage="completed",
            records_processed=self.total_records,
            result=result,
        )

    def fail(self, error: str, message: str | None = None) -> DedupeProgress | None:
        error = error.strip() or "Erreur inconnue"
        return self.emit(
            FAILED,
            self.percentage,
            message or f"Échec du traitement : {error}",
            stage="failed",
            error=error,
        )

    def cancel(self, message: str = "Job annulé") -> DedupeProgress | None:
        return self.emit(CANCELLED, self.percentage, message, stage="cancelled")
