"""Job délégué : soumission au service externe, suivi par polling, annulation confirmée."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from typing import Any

import pandas as pd
import structlog

from dedoublon.config import DedupeConfig
from dedoublon.jobs.base import DedupeJob
from dedoublon.jobs.service import ExternalServiceError, MatchingService, RemoteStatus, normalize_remote_status
from dedoublon.progress import (
    CANCELLED,
    COMPLETED,
    FAILED,
    DedupeProgress,
    JobStateError,
    ProgressListener,
    describe_error,
)

logger = structlog.get_logger("dedoublon.jobs.delegated")

CONTINUE = "continue"
AWAIT_CANCEL = "await_cancel"
COMPLETE = "complete"
FAIL = "fail"
CANCEL = "cancel"


def next_action(cancel_requested: bool, remote_status: str) -> str:
    """
    Transition du job délégué en fonction du statut distant.

    Un statut distant terminal l'emporte toujours : si le service répond
    completed après une demande d'annulation, le job est completed.

    Returns:
        continue, await_cancel, complete, fail ou cancel.
    """
    status = normalize_remote_status(remote_status)
    if status == COMPLETED:
        return COMPLETE
    if status == FAILED:
        return FAIL
    if status == CANCELLED:
        return CANCEL
    return AWAIT_CANCEL if cancel_requested else CONTINUE


class DelegatedDedupeJob(DedupeJob):
    """
    Dédoublonnage confié à un MatchingService.

    Le job ne calcule aucun score : il soumet, interroge le service à
    intervalle fixe et traduit ses réponses en DedupeProgress. Une fois
    terminal, il n'interroge plus le service.
    """

    def __init__(
        self,
        records: pd.DataFrame | Sequence[Mapping[str, Any]],
        config: DedupeConfig,
        service: MatchingService,
        *,
        listener: ProgressListener | None = None,
        job_id: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(records, config, listener=listener, job_id=job_id)
        self.service = service
        self.remote_job_id: str | None = None
        self.cancel_requested = False
        self._sleep = sleep

    def _service_failed(self, operation: str, error: Exception) -> DedupeProgress:
        if isinstance(error, ExternalServiceError):
            logger.error("external_service_error", job_id=self.job_id, operation=operation, error=str(error))
            self._emitter.fail(str(error) or type(error).__name__, f"Service de matching indisponible ({operation})")
        else:
            logger.exception("external_service_crashed", job_id=self.job_id, operation=operation)
            self._emitter.fail(describe_error(error), f"Erreur inattendue du service de matching ({operation})")
        return self.progress

    def start(self) -> DedupeProgress:
        """
        Soumet le job au service.

        Raises:
            JobStateError: Si le job a déjà été démarré ou est terminé.
        """
        if self.remote_job_id is not None or self.is_terminal:
            raise JobStateError(f"Job {self.job_id} déjà démarré ou terminé (status={self.status})")
        self._emitter.processing(0, "Envoi des données au service de matching...", stage="submission")
        try:
            self.remote_job_id = self.service.submit(self._frame, self.config)
        except Exception as e:
            return self._service_failed("submit", e)

        logger.info("delegated_job_submitted", job_id=self.job_id, remote_job_id=self.remote_job_id)
        self._emitter.processing(0, f"Job {self.remote_job_id} soumis au service de matching", stage="submitted")
        return self.progress

    def _apply(self, remote: RemoteStatus) -> None:
        action = next_action(self.cancel_requested, remote.status)

        if action == COMPLETE:
            result = remote.result
            if result is not None and result.job_id is None:
                result = replace(result, job_id=self.remote_job_id)
            if result is None:
                logger.warning("completed_without_result", job_id=self.job_id, remote_job_id=self.remote_job_id)
            self._emitter.complete(remote.message or "Dédoublonnage terminé par le service de matching", result=result)
        elif action == FAIL:
            error = remote.error or remote.message or "Le service de matching a signalé un échec"
            self._emitter.fail(error)
        elif action == CANCEL:
            self._emitter.cancel(remote.message or "Job annulé par le service de matching")
        elif action == AWAIT_CANCEL:
            self._emitter.processing(
                remote.percentage,
                "Annulation demandée, en attente de confirmation du service...",
                stage="cancelling",
                records_processed=remote.records_processed,
            )
        else:
            self._emitter.processing(
                remote.percentage,
                remote.message or "Traitement en cours par le service de matching...",
                stage=remote.stage or "processing",
                records_processed=remote.records_processed,
            )

        if self.is_terminal:
            logger.info("delegated_job_finished", job_id=self.job_id, status=self.status)

    def poll(self) -> DedupeProgress:
        """
        Interroge le service une fois et retourne le nouvel instantané.

        Ne fait aucun appel une fois le job terminal.

        Raises:
            JobStateError: Si le job n'a pas été soumis.
        """
        if self.is_terminal:
            return self.progress
        if self.remote_job_id is None:
            raise JobStateError(f"Job {self.job_id} non démarré")
        try:
            remote = self.service.get_status(self.remote_job_id)
        except Exception as e:
            return self._service_failed("status", e)
        self._apply(remote)
        return self.progress

    def wait(self, max_polls: int | None = None) -> DedupeProgress:
        """
        Interroge le service toutes les poll_interval secondes jusqu'à l'état terminal.

        max_polls permet à l'appelant d'abandonner le suivi ; le job reste alors non terminal.
        """
        polls = 0
        while not self.is_terminal:
            if max_polls is not None and polls >= max_polls:
                logger.warning("polling_abandoned", job_id=self.job_id, polls=polls)
                break
            self.poll()
            polls += 1
            if not self.is_terminal:
                self._sleep(self.config.poll_interval)
        return self.progress

    def cancel(self) -> None:
        """
        Demande l'annulation au service.

        Le job reste en processing jusqu'à ce que le service confirme
        (cancelled) ou termine (completed). Sans effet sur un job terminal ou
        déjà en cours d'annulation.
        """
        if self.is_terminal or self.cancel_requested:
            return
        if self.remote_job_id is None:
            self._emitter.cancel("Job annulé avant envoi au service")
            return
        try:
            ack = self.service.cancel(self.remote_job_id)
        except Exception as e:
            self._service_failed("cancel", e)
            return
        if not ack.accepted:
            logger.warning("cancel_rejected", job_id=self.job_id, message=ack.message)
            return
        self.cancel_requested = True
        logger.info("delegated_job_cancel_requested", job_id=self.job_id, remote_job_id=self.remote_job_id)
        self._emitter.processing(
            self._emitter.percentage,
            ack.message or "Annulation demandée, en attente de confirmation du service...",
            stage="cancelling",
        )

    def run(self, max_polls: int | None = None) -> DedupeProgress:
        """start() puis wait()."""
        self.start()
        return self.wait(max_polls)
