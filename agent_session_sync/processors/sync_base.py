"""
Shared pending-queue sync algorithm.

A queue processor reads its JSONL queue, sends every ``pending`` record,
and atomically rewrites the file with the outcome of each attempt:

- sent records become ``success`` with response metadata
- failed records stay ``pending`` with ``response.error`` and an
  incremented ``sync_attempts`` so the next pass retries them
- records that were not pending are written back untouched

The processor never writes the session record. Its watermark is returned
in ``metadata["sync_updates"]`` for the caller to persist.
"""

from __future__ import annotations

import logging
import time
from abc import abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..local.file_ops import read_jsonl, write_jsonl_atomic
from .base import ProcessingContext, ProcessingResult, SessionProcessor, SessionSnapshot
from .queue import PayloadRecord, PayloadStatus

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SendOutcome:
    """Result of sending one payload record."""

    success: bool
    message: str = ""
    items: int = 0  # messages or metrics covered by the payload
    response: dict[str, Any] = field(default_factory=dict)


class PendingQueueProcessor(SessionProcessor):
    """Base class for processors that drain a JSONL payload queue."""

    #: Key of this processor's section in the session record's sync state
    section: str = ""
    #: Plural noun used in result messages
    noun: str = "payloads"

    def __init__(
        self,
        sessions_dir: Path | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """
        Args:
            sessions_dir: Queue directory, used when the context has none
            clock: Returns the current time in epoch ms
        """
        self.sessions_dir = sessions_dir
        self._clock = clock or now_ms
        self._is_syncing = False

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    def should_process(self, snapshot: SessionSnapshot) -> bool:
        # Pending payloads are checked inside process()
        return True

    @abstractmethod
    def queue_path(self, sessions_dir: Path, session_id: str) -> Path:
        """Path of this processor's queue for the session."""

    @abstractmethod
    def create_client(self, context: ProcessingContext) -> Any:
        """Build the API client used for one pass."""

    @abstractmethod
    async def send(
        self, client: Any, record: PayloadRecord, snapshot: SessionSnapshot
    ) -> SendOutcome:
        """Send one pending record."""

    @abstractmethod
    def build_sync_updates(
        self,
        sent: list[tuple[PayloadRecord, SendOutcome]],
        failures: list[tuple[PayloadRecord, str]],
        synced_at: int,
    ) -> dict[str, Any]:
        """Watermark for the session record after one pass."""

    async def process(
        self, snapshot: SessionSnapshot, context: ProcessingContext
    ) -> ProcessingResult:
        if self._is_syncing:
            return ProcessingResult(success=True, message="Sync in progress")
        self._is_syncing = True

        try:
            return await self._process_queue(snapshot, context)
        except Exception as e:
            logger.error(f"[{self.name}] Processing failed for {snapshot.session_id}: {e}")
            return ProcessingResult(success=False, message=str(e))
        finally:
            self._is_syncing = False

    async def _process_queue(
        self, snapshot: SessionSnapshot, context: ProcessingContext
    ) -> ProcessingResult:
        sessions_dir = context.sessions_dir or self.sessions_dir
        if sessions_dir is None:
            return ProcessingResult(success=False, message="No sessions directory configured")

        path = self.queue_path(Path(sessions_dir), snapshot.session_id)
        raw_records = await read_jsonl(path)
        records = [PayloadRecord.from_dict(raw) for raw in raw_records]
        pending = [i for i, record in enumerate(records) if record.is_pending]

        if not pending:
            logger.debug(f"[{self.name}] No pending payloads for session {snapshot.session_id}")
            return ProcessingResult(success=True, message="No pending payloads")

        logger.info(f"[{self.name}] Syncing {len(pending)} pending {self.noun}")
        client = self.create_client(context)

        sent: list[tuple[PayloadRecord, SendOutcome]] = []
        failures: list[tuple[PayloadRecord, str]] = []
        attempted_at = self._clock()

        for index in pending:
            record = records[index]
            try:
                outcome = await self.send(client, record, snapshot)
            except Exception as e:
                outcome = SendOutcome(success=False, message=str(e))

            record.sync_attempts += 1
            if outcome.success:
                record.status = PayloadStatus.SUCCESS
                record.response = {"synced_at": attempted_at, **outcome.response}
                sent.append((record, outcome))
            else:
                logger.error(
                    f"[{self.name}] Failed to sync payload {record.timestamp}: {outcome.message}"
                )
                record.response = {"error": outcome.message, "last_attempt_at": attempted_at}
                failures.append((record, outcome.message))

        pending_set = set(pending)
        rewritten = [
            records[i].to_dict() if i in pending_set else raw
            for i, raw in enumerate(raw_records)
        ]
        await write_jsonl_atomic(path, rewritten)

        items = sum(outcome.items for _, outcome in sent)
        logger.info(
            f"[{self.name}] Synced {len(sent)}/{len(pending)} {self.noun} ({items} items)"
        )

        return ProcessingResult(
            success=True,
            message=f"Synced {len(sent)}/{len(pending)} {self.noun}",
            metadata={
                "noun": self.noun,
                "payloads_synced": len(sent),
                "payloads_failed": len(failures),
                "items_synced": items,
                "sync_section": self.section,
                "sync_updates": self.build_sync_updates(sent, failures, attempted_at),
            },
        )
