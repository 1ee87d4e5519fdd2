"""Contrat du service de matching externe (mode delegated)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import pandas as pd

from dedoublon.config import DedoublonError, DedupeConfig
from dedoublon.progress import CANCELLED, COMPLETED, FAILED, PROCESSING, WAITING
from dedoublon.result import DedupeResult


class ExternalServiceError(DedoublonError):
    """Échec d'un appel au service externe (réseau, réponse non 2xx, timeout, réponse illisible)."""


@dataclass(frozen=True)
class RemoteStatus:
    """État d'un job tel que rapporté par le service externe."""

    status: str
    percentage: float = 0.0
    message: str = ""
    error: str | None = None
    result: DedupeResult | None = None
    stage: str | None = None
    records_processed: int | None = None


@dataclass(frozen=True)
class CancelAck:
    """Réponse du service à une demande d'annulation."""

    accepted: bool
    message: str = ""


class MatchingService(Protocol):
    """Service capable de dédoublonner à notre place."""

    def submit(self, records: pd.DataFrame, config: DedupeConfig) -> str:
        """Soumet un job et retourne son identifiant côté service."""
        ...

    def get_status(self, job_id: str) -> RemoteStatus: ...

    def cancel(self, job_id: str) -> CancelAck: ...


def normalize_remote_status(status: str | None) -> str:
    """
    Ramène un statut distant à l'un des cinq statuts du job.

    Les statuts intermédiaires propres au service (connecting, loading,
    blocked, clustering, running...) valent processing.
    """
    value = (status or "").strip().lower()
    if value in ("completed", "complete", "done", "success", "succeeded"):
        return COMPLETED
    if value in ("failed", "failure", "error"):
        return FAILED
    if value in ("cancelled", "canceled"):
        return CANCELLED
    if value in ("waiting", "queued", "pending", "submitted"):
        return WAITING
    return PROCESSING
