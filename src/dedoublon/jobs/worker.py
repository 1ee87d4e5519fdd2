"""Worker pour exécuter le dédoublonnage local dans un thread."""

from __future__ import annotations

import queue
import threading

import pandas as pd
import structlog

from dedoublon.config import DedupeConfig
from dedoublon.matching.deduplicator import Deduplicator
from dedoublon.progress import (
    CancellationToken,
    DedupeProgress,
    JobCancelled,
    ProgressEmitter,
    describe_error,
)
from dedoublon.result import DedupeResult, Timings

logger = structlog.get_logger("dedoublon.jobs.worker")


def execute_local(
    frame: pd.DataFrame,
    config: DedupeConfig,
    emitter: ProgressEmitter,
    cancel_token: CancellationToken | None = None,
    *,
    job_id: str | None = None,
) -> DedupeResult | None:
    """
    Exécute le pipeline local et émet exactement un instantané terminal.

    - Succès : completed (100 %), résultat joint à l'instantané.
    - Annulation : cancelled, travail partiel abandonné.
    - Toute autre exception : failed avec un message d'erreur non vide.

    Returns:
        Le résultat, ou None si le job n'est pas allé au bout.
    """
    timings = Timings()
    try:
        result = Deduplicator(config).run(
            frame,
            emitter=emitter,
            cancel_token=cancel_token,
            job_id=job_id,
            timings=timings,
        )
    except JobCancelled:
        logger.info("job_cancelled", job_id=job_id, percentage=emitter.percentage)
        emitter.cancel("Job annulé : traitement interrompu, résultats partiels abandonnés")
        return None
    except Exception as e:
        logger.exception("job_failed", job_id=job_id)
        emitter.fail(describe_error(e))
        return None

    emitter.complete(
        f"Dédoublonnage terminé : {result.unique_rows} enregistrement(s) unique(s), "
        f"{result.duplicate_rows} doublon(s)",
        result=result,
    )
    return result


class DedupeWorker(threading.Thread):
    """
    Thread exécutant Deduplicator.run().

    Ne communique avec l'appelant que par la file outbox (instantanés
    DedupeProgress, le dernier étant terminal).
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        config: DedupeConfig,
        outbox: queue.Queue[DedupeProgress],
        *,
        job_id: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        super().__init__(name=f"dedoublon-worker-{job_id or 'local'}", daemon=True)
        self._frame = frame
        self._config = config
        self._outbox = outbox
        self._job_id = job_id
        self.cancel_token = cancel_token or CancellationToken()

    def request_cancel(self) -> None:
        """Demande l'annulation (prise en compte entre deux blocs / lots de paires)."""
        self.cancel_token.cancel()

    def run(self) -> None:
        emitter = ProgressEmitter(self._outbox.put, job_id=self._job_id, total_records=len(self._frame))
        execute_local(self._frame, self._config, emitter, self.cancel_token, job_id=self._job_id)
