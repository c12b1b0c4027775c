"""
Session record persistence.

Each wrapped agent session has one record at
``{sessions_dir}/{session_id}.json``. Hook events may arrive in separate
processes, so every mutation is a load-modify-save round trip through an
atomic write. Within one process, a per-session lock serializes those
round trips.

Files:
- {session_id}.json                 session record
- {session_id}_metrics.jsonl        metrics payload queue
- {session_id}_conversation.jsonl   conversation payload queue

At SessionEnd all three are renamed to ``completed_{basename}``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..config import COMPLETED_PREFIX, conversation_path, metrics_path, session_path
from ..exceptions import SessionValidationError, StorageIOError
from .file_ops import file_exists, list_files, read_json, rename_with_prefix, write_json_atomic
from .types import CorrelationResult, CorrelationStatus, SessionRecord, SessionStatus

logger = logging.getLogger(__name__)

# Watermark fields merged by max instead of replaced
_MAX_FIELDS = ("last_synced_history_index",)

# Counter fields merged by addition instead of replaced
_COUNTER_FIELDS = (
    "total_messages_synced",
    "total_sync_attempts",
    "total_synced",
    "total_payloads",
)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """
    Manages session records on the local filesystem.

    Contract:
    - Inputs: session_id (str), SessionRecord
    - Outputs: SessionRecord or None
    - Side Effects: atomic writes under sessions_dir
    """

    def __init__(self, sessions_dir: Path, clock: Callable[[], int] | None = None):
        """Initialize the store.

        Args:
            sessions_dir: Directory holding session records and payload queues
            clock: Returns the current time in epoch ms (default: wall clock)
        """
        self.sessions_dir = Path(sessions_dir).expanduser()
        self._clock = clock or _now_ms
        self._locks: dict[str, asyncio.Lock] = {}

    def now(self) -> int:
        return self._clock()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def _validate_session_id(self, session_id: str) -> None:
        """Reject ids that would escape sessions_dir."""
        if not session_id or not session_id.strip():
            raise SessionValidationError("session_id cannot be empty", "session_id")

        if "/" in session_id or "\\" in session_id or session_id in (".", ".."):
            raise SessionValidationError(f"Invalid session_id: {session_id}", "session_id")

    def session_path(self, session_id: str) -> Path:
        return session_path(self.sessions_dir, session_id)

    def metrics_path(self, session_id: str) -> Path:
        return metrics_path(self.sessions_dir, session_id)

    def conversation_path(self, session_id: str) -> Path:
        return conversation_path(self.sessions_dir, session_id)

    async def save_session(self, record: SessionRecord) -> None:
        """Create or replace a session record.

        Raises:
            SessionValidationError: If session_id is invalid
            StorageIOError: If the write fails
        """
        self._validate_session_id(record.session_id)
        async with self._lock_for(record.session_id):
            await self._write(record)

    async def load_session(self, session_id: str) -> SessionRecord | None:
        """Load a session record.

        Returns:
            The record, or None if it is missing or unreadable
        """
        self._validate_session_id(session_id)
        return await self._read(session_id)

    async def exists(self, session_id: str) -> bool:
        self._validate_session_id(session_id)
        return await file_exists(self.session_path(session_id))

    async def list_sessions(self) -> list[SessionRecord]:
        """List all session records that have not been archived."""
        records = []
        for path in await list_files(self.sessions_dir, ".json"):
            if path.name.startswith((COMPLETED_PREFIX, ".")):
                continue
            record = await self._read(path.stem)
            if record is not None:
                records.append(record)
        return records

    async def list_active_sessions(self) -> list[SessionRecord]:
        return [r for r in await self.list_sessions() if r.status == SessionStatus.ACTIVE]

    async def update_status(
        self,
        session_id: str,
        status: SessionStatus,
        reason: str | None = None,
    ) -> SessionRecord | None:
        """Update session status.

        ``completed`` is terminal: it sets end_time and any later attempt to
        move the session back to ``active`` is refused.

        Returns:
            The updated record, or None if nothing was written
        """
        self._validate_session_id(session_id)
        async with self._lock_for(session_id):
            record = await self._read(session_id)
            if record is None:
                logger.warning(f"Cannot update status of unknown session {session_id}")
                return None

            if record.is_completed and status != SessionStatus.COMPLETED:
                logger.warning(
                    f"Refusing to move session {session_id} from completed to {status.value}"
                )
                return None

            record.status = status
            if reason is not None:
                record.status_reason = reason
            if status == SessionStatus.COMPLETED and record.end_time is None:
                record.end_time = self.now()

            await self._write(record)
            logger.debug(f"Session {session_id} status -> {status.value}")
            return record

    async def update_correlation(self, session_id: str, **changes: Any) -> SessionRecord | None:
        """Merge fields into the session's correlation result."""
        self._validate_session_id(session_id)
        async with self._lock_for(session_id):
            record = await self._read(session_id)
            if record is None:
                logger.warning(f"Cannot update correlation of unknown session {session_id}")
                return None

            merged = record.correlation.to_dict()
            for key, value in changes.items():
                if isinstance(value, CorrelationStatus):
                    value = value.value
                merged[key] = value
            record.correlation = CorrelationResult.from_dict(merged)

            await self._write(record)
            return record

    async def apply_sync_updates(
        self,
        session_id: str,
        section: str,
        updates: dict[str, Any],
    ) -> SessionRecord | None:
        """Merge a processor's watermark into ``sync[section]``.

        ``last_synced_history_index`` keeps the max of old and new, counter
        fields are added, everything else is replaced.
        """
        self._validate_session_id(session_id)
        if not updates:
            return None

        async with self._lock_for(session_id):
            record = await self._read(session_id)
            if record is None:
                logger.warning(f"Dropping {section} sync updates for unknown session {session_id}")
                return None

            current = dict(record.sync.get(section, {}))
            for key, value in updates.items():
                old = current.get(key)
                if key in _MAX_FIELDS and old is not None and value is not None:
                    current[key] = max(old, value)
                elif key in _COUNTER_FIELDS and old is not None and value is not None:
                    current[key] = old + value
                else:
                    current[key] = value
            record.sync[section] = current

            await self._write(record)
            return record

    async def start_activity_tracking(self, session_id: str) -> None:
        """Open an activity interval unless one is already open."""
        self._validate_session_id(session_id)
        async with self._lock_for(session_id):
            record = await self._read(session_id)
            if record is None:
                logger.warning(f"Cannot track activity of unknown session {session_id}")
                return
            if record.active_since is not None:
                return

            record.active_since = self.now()
            await self._write(record)

    async def accumulate_active_duration(self, session_id: str) -> int:
        """Close the open activity interval and add it to active_duration_ms.

        Returns:
            Milliseconds added (0 when no interval was open)
        """
        self._validate_session_id(session_id)
        async with self._lock_for(session_id):
            record = await self._read(session_id)
            if record is None:
                logger.warning(f"Cannot accumulate activity of unknown session {session_id}")
                return 0
            if record.active_since is None:
                return 0

            delta = max(0, self.now() - record.active_since)
            record.active_duration_ms += delta
            record.active_since = None

            await self._write(record)
            logger.debug(
                f"Session {session_id} active +{delta}ms (total {record.active_duration_ms}ms)"
            )
            return delta

    async def archive_session_files(
        self,
        session_id: str,
        prefix: str = COMPLETED_PREFIX,
    ) -> list[str]:
        """Rename the session record and its payload queues with a prefix.

        A failed rename is logged and does not stop the others.

        Returns:
            Errors encountered, one message per failed rename
        """
        self._validate_session_id(session_id)
        errors: list[str] = []
        async with self._lock_for(session_id):
            for path in (
                self.session_path(session_id),
                self.metrics_path(session_id),
                self.conversation_path(session_id),
            ):
                try:
                    renamed = await rename_with_prefix(path, prefix)
                except StorageIOError as e:
                    logger.error(f"Failed to archive {path.name}: {e.details.get('cause', e)}")
                    errors.append(f"{path.name}: {e.details.get('cause', e.message)}")
                    continue
                if renamed is not None:
                    logger.debug(f"Archived {path.name} -> {renamed.name}")
        return errors

    async def _read(self, session_id: str) -> SessionRecord | None:
        try:
            data = await read_json(self.session_path(session_id))
        except StorageIOError as e:
            logger.error(f"Failed to load session {session_id}: {e.details.get('cause', e)}")
            return None
        if data is None:
            return None

        try:
            return SessionRecord.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Corrupt session record {session_id}: {e}")
            return None

    async def _write(self, record: SessionRecord) -> None:
        await write_json_atomic(self.session_path(record.session_id), record.to_dict())
        logger.debug(f"Session {record.session_id} saved")
