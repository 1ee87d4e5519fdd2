"""Jobs de dédoublonnage : exécution locale (thread) ou déléguée (service externe)."""

from dedoublon.jobs.base import DedupeJob
from dedoublon.jobs.delegated import DelegatedDedupeJob, next_action
from dedoublon.jobs.local import LocalDedupeJob
from dedoublon.jobs.service import CancelAck, ExternalServiceError, MatchingService, RemoteStatus
from dedoublon.jobs.splink import SplinkClient

__all__ = [
    "DedupeJob",
    "LocalDedupeJob",
    "DelegatedDedupeJob",
    "next_action",
    "MatchingService",
    "RemoteStatus",
    "CancelAck",
    "ExternalServiceError",
    "SplinkClient",
]
