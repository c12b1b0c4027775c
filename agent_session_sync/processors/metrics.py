"""Metrics sync processor."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..api.client import ApiClientConfig
from ..api.metrics import MetricsApiClient
from ..config import metrics_path
from .base import ProcessingContext, SessionSnapshot
from .queue import PayloadRecord
from .sync_base import PendingQueueProcessor, SendOutcome


class MetricsSyncProcessor(PendingQueueProcessor):
    """Drains ``{session_id}_metrics.jsonl`` into the metrics API.

    Each payload is a complete metric body (``{name, attributes, ...}``)
    and is posted as-is. Grouping per-turn deltas into metrics (by git
    branch, for instance) is done by the agent's session adapter when it
    queues the payload.
    """

    section = "metrics"
    noun = "metric batches"

    @property
    def name(self) -> str:
        return "metrics-sync"

    @property
    def priority(self) -> int:
        return 1

    def queue_path(self, sessions_dir: Path, session_id: str) -> Path:
        return metrics_path(sessions_dir, session_id)

    def create_client(self, context: ProcessingContext) -> MetricsApiClient:
        return MetricsApiClient(ApiClientConfig.from_context(context))

    async def send(
        self, client: MetricsApiClient, record: PayloadRecord, snapshot: SessionSnapshot
    ) -> SendOutcome:
        if not record.payload:
            return SendOutcome(success=False, message="Empty metric payload")

        response = await client.send_metric(record.payload)
        if not response.success:
            return SendOutcome(success=False, message=response.message)
        return SendOutcome(
            success=True,
            message=response.message,
            items=1,
            response={"message": response.data.get("message", response.message)},
        )

    def build_sync_updates(
        self,
        sent: list[tuple[PayloadRecord, SendOutcome]],
        failures: list[tuple[PayloadRecord, str]],
        synced_at: int,
    ) -> dict[str, Any]:
        updates: dict[str, Any] = {
            "total_synced": len(sent),
            "total_payloads": len(sent) + len(failures),
            "total_sync_attempts": 1,
            "last_sync_error": failures[-1][1] if failures else None,
        }
        if sent:
            updates["last_sync_at"] = synced_at
        return updates
