"""
In-memory collaborator adapters.

Stand-ins for the managed object storage and evaluation table, used by tests
and local runs. They honour the same contracts as the production adapters,
including raising StorageError / RecordStoreError when told to fail.
"""

import logging
from typing import Any, Optional

from dsd.errors import RecordStoreError, StorageError
from dsd.models.results import EvaluationProtocolRecord

logger = logging.getLogger(__name__)


class InMemoryObjectStorage:
    """Object storage keyed by (bucket, path)."""

    def __init__(self, fail: bool = False):
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.fail = fail

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "image/png",
    ) -> str:
        if self.fail:
            raise StorageError(f"Upload rejected: {bucket}/{path}")
        self.objects[(bucket, path)] = (data, content_type)
        logger.debug(f"Stored {len(data)} bytes at {bucket}/{path}")
        return path


class InMemoryEvaluationStore:
    """
    Evaluation rows held as dicts.

    Each row carries at least id, user_id, patient_id, session_id, tooth,
    treatment_type, created_at and the protocol columns.
    """

    def __init__(self, rows: Optional[list[dict[str, Any]]] = None):
        self.rows: dict[str, dict[str, Any]] = {row["id"]: dict(row) for row in rows or []}
        self.failing_ids: set[str] = set()
        self.fail_reads = False

    def _check_read(self) -> None:
        if self.fail_reads:
            raise RecordStoreError("Evaluation store unavailable")

    async def get_evaluation_owner(self, evaluation_id: str) -> Optional[str]:
        self._check_read()
        row = self.rows.get(evaluation_id)
        return row.get("user_id") if row else None

    async def update_evaluation(self, evaluation_id: str, fields: dict[str, Any]) -> None:
        await self.update_evaluations([evaluation_id], fields)

    async def find_latest_protocol(
        self,
        patient_id: str,
        tooth: str,
    ) -> Optional[EvaluationProtocolRecord]:
        self._check_read()
        matches = [
            row for row in self.rows.values()
            if row.get("patient_id") == patient_id
            and row.get("tooth") == tooth
            and row.get("generic_protocol") is not None
        ]
        if not matches:
            return None
        latest = max(matches, key=lambda row: row.get("created_at") or "")
        return EvaluationProtocolRecord.model_validate(latest)

    async def fetch_session_evaluations(
        self,
        session_id: str,
        evaluation_ids: list[str],
    ) -> list[EvaluationProtocolRecord]:
        self._check_read()
        wanted = set(evaluation_ids)
        return [
            EvaluationProtocolRecord.model_validate(row)
            for row in self.rows.values()
            if row.get("session_id") == session_id and row["id"] in wanted
        ]

    async def update_evaluations(self, evaluation_ids: list[str], fields: dict[str, Any]) -> None:
        failing = self.failing_ids.intersection(evaluation_ids)
        if failing:
            raise RecordStoreError(f"Update rejected for {sorted(failing)}")
        for evaluation_id in evaluation_ids:
            row = self.rows.get(evaluation_id)
            if row is None:
                raise RecordStoreError(f"Evaluation {evaluation_id} not found")
            row.update(fields)
