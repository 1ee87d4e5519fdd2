"""Client HTTP du service Splink (implémentation de MatchingService)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import pandas as pd
import structlog

from dedoublon.config import DedupeConfig, MappedColumn, SplinkSettings
from dedoublon.jobs.base import new_job_id
from dedoublon.jobs.service import CancelAck, ExternalServiceError, RemoteStatus, normalize_remote_status
from dedoublon.matching.clustering import clusters_from_groups
from dedoublon.normalize import is_missing, safe_str
from dedoublon.progress import COMPLETED, TERMINAL_STATUSES
from dedoublon.records import Value, frame_rows
from dedoublon.result import DedupeResult, Timings, assemble_result

logger = structlog.get_logger("dedoublon.jobs.splink")

DEFAULT_UNIQUE_ID_COLUMN = "unique_id"


def splink_match_type(column: MappedColumn, threshold: float) -> str:
    """Type de comparaison Splink correspondant au comparateur d'une colonne."""
    if column.comparator == "fuzzy":
        return "levenshtein" if threshold < 0.85 else "jaro_winkler"
    if column.comparator == "partial":
        return "levenshtein"
    if column.comparator == "token_set":
        return "jaccard"
    if column.comparator == "numeric":
        return "numeric"
    return "exact"


def assign_unique_ids(df: pd.DataFrame, unique_id_column: str) -> list[str]:
    """
    Identifiant unique (str) de chaque enregistrement.

    Valeur de la colonne si elle est renseignée et pas encore prise,
    sinon "id-<index>".
    """
    ids: list[str] = []
    taken: set[str] = set()
    values = df[unique_id_column].tolist() if unique_id_column in df.columns else [None] * len(df)
    for idx, val in enumerate(values):
        uid = safe_str(val).strip() if not is_missing(val) else ""
        if not uid or uid in taken:
            uid = f"id-{idx}"
        taken.add(uid)
        ids.append(uid)
    return ids


def format_splink_payload(
    df: pd.DataFrame,
    config: DedupeConfig,
    job_id: str,
) -> tuple[dict[str, Any], dict[str, int]]:
    """
    Prépare la requête de dédoublonnage au format attendu par le service.

    Returns:
        (payload, {unique_id: index de l'enregistrement})
    """
    unique_id_column = config.splink.unique_id_column or DEFAULT_UNIQUE_ID_COLUMN
    ids = assign_unique_ids(df, unique_id_column)
    input_data: list[dict[str, Value]] = []
    for uid, row in zip(ids, frame_rows(df)):
        input_data.append({**row, unique_id_column: uid})

    payload: dict[str, Any] = {
        "unique_id_column": unique_id_column,
        "blocking_fields": list(config.blocking_columns or []),
        "match_fields": [
            {"field": c.source_col, "type": splink_match_type(c, config.threshold)} for c in config.match_columns
        ],
        "input_data": input_data,
        "job_id": job_id,
        "total_rows": len(df),
    }
    if config.splink.output_dir:
        payload["output_dir"] = config.splink.output_dir
    return payload, {uid: idx for idx, uid in enumerate(ids)}


def parse_splink_result(
    response: dict[str, Any],
    df: pd.DataFrame,
    id_to_index: dict[str, int],
    config: DedupeConfig,
    timings: Timings,
    *,
    job_id: str | None = None,
) -> DedupeResult:
    """
    Convertit la réponse cluster_data du service en DedupeResult.

    Chaque ligne de cluster_data porte cluster_id et l'identifiant unique
    de l'enregistrement ; les enregistrements absents de cluster_data sont
    des singletons.

    Raises:
        ExternalServiceError: Si la réponse ne contient pas de cluster_data.
    """
    cluster_data = response.get("cluster_data")
    if not isinstance(cluster_data, list):
        raise ExternalServiceError(safe_str(response.get("error")) or "Réponse du service sans cluster_data")

    unique_id_column = config.splink.unique_id_column or DEFAULT_UNIQUE_ID_COLUMN
    groups: dict[str, set[int]] = {}
    placed: set[int] = set()
    unknown = 0
    for record in cluster_data:
        if not isinstance(record, dict):
            raise ExternalServiceError(f"Ligne de cluster_data illisible: {record!r}")
        idx = id_to_index.get(safe_str(record.get(unique_id_column)).strip())
        if idx is None or idx in placed:
            unknown += 1
            continue
        placed.add(idx)
        groups.setdefault(safe_str(record.get("cluster_id")), set()).add(idx)
    if unknown:
        logger.warning("unknown_cluster_records", count=unknown, job_id=job_id)

    all_groups = list(groups.values()) + [{idx} for idx in range(len(df)) if idx not in placed]
    clusters = clusters_from_groups(all_groups, frame_rows(df), config.match_columns)
    return assemble_result(df, clusters, timings, job_id=job_id, data_source=config.data_source)


@dataclass
class _SubmittedJob:
    frame: pd.DataFrame
    config: DedupeConfig
    id_to_index: dict[str, int]
    timings: Timings


class SplinkClient:
    """
    Accès HTTP au service Splink.

    - POST /deduplicate : soumission (réponse {"job_id": ...})
    - GET /status/{job_id} : état (status, progress, message, error, result)
    - POST /cancel/{job_id} : annulation (réponse {"success": bool, "message": ...})
    """

    def __init__(
        self,
        settings: SplinkSettings | None = None,
        *,
        api_key: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or SplinkSettings()
        headers = {"X-API-Key": api_key} if api_key else {}
        self._client = client or httpx.Client(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout,
            headers=headers,
        )
        self._jobs: dict[str, _SubmittedJob] = {}

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> SplinkClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:200]
            raise ExternalServiceError(
                f"Service de matching : HTTP {e.response.status_code} sur {method} {url} : {body}"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Service de matching injoignable ({method} {url}) : {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError(f"Réponse non JSON du service de matching ({method} {url})") from e
        if not isinstance(data, dict):
            raise ExternalServiceError(f"Réponse inattendue du service de matching ({method} {url})")
        return data

    def submit(self, records: pd.DataFrame, config: DedupeConfig) -> str:
        timings = Timings()
        local_id = new_job_id()
        payload, id_to_index = format_splink_payload(records, config, local_id)
        data = self._request("POST", "/deduplicate", json=payload)
        job_id = safe_str(data.get("job_id") or local_id)
        self._jobs[job_id] = _SubmittedJob(records, config, id_to_index, timings)
        logger.info("splink_job_submitted", job_id=job_id, rows=len(records))
        return job_id

    def get_status(self, job_id: str) -> RemoteStatus:
        """
        Interroge le service sur l'état d'un job.

        Dès que le statut est terminal, le job est oublié par le client.

        Raises:
            ExternalServiceError: Erreur HTTP ou réponse illisible.
        """
        data = self._request("GET", f"/status/{job_id}")
        status = normalize_remote_status(safe_str(data.get("status")))
        job = self._jobs.pop(job_id, None) if status in TERMINAL_STATUSES else None

        try:
            percentage = float(data.get("progress", data.get("percentage", 0.0)) or 0.0)
            records_processed = data.get("recordsProcessed")
            if records_processed is not None:
                records_processed = int(records_processed)
        except (TypeError, ValueError) as e:
            raise ExternalServiceError(f"Réponse illisible du service de matching pour {job_id}: {e}") from e
        message = safe_str(data.get("message") or data.get("statusMessage"))
        error = data.get("error")

        result = None
        if status == COMPLETED:
            if job is None:
                raise ExternalServiceError(f"Job inconnu de ce client : {job_id}")
            payload = data.get("result") or data
            if not isinstance(payload, dict):
                raise ExternalServiceError(f"Résultat illisible du service de matching pour {job_id}")
            result = parse_splink_result(
                payload,
                job.frame,
                job.id_to_index,
                job.config,
                job.timings,
                job_id=job_id,
            )

        return RemoteStatus(
            status=status,
            percentage=percentage,
            message=message,
            error=safe_str(error) if error is not None else None,
            result=result,
            stage=safe_str(data.get("stage")) or None,
            records_processed=records_processed,
        )

    def forget(self, job_id: str) -> None:
        """Libère les données gardées pour un job dont on abandonne le suivi."""
        self._jobs.pop(job_id, None)

    def cancel(self, job_id: str) -> CancelAck:
        data = self._request("POST", f"/cancel/{job_id}")
        accepted = bool(data.get("success", data.get("accepted", False)))
        return CancelAck(accepted=accepted, message=data.get("message") or "")
