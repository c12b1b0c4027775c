"""
Payload queue records.

Each line of a ``{session_id}_{kind}.jsonl`` queue is one PayloadRecord.
A transformer appends records as ``pending``; a sync processor rewrites
the file with the outcome of each attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PayloadStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class PayloadRecord:
    """One unit of work awaiting sync."""

    timestamp: int | str
    status: PayloadStatus = PayloadStatus.PENDING
    payload: dict[str, Any] = field(default_factory=dict)
    history_indices: list[int] | None = None
    response: dict[str, Any] | None = None
    sync_attempts: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = ("timestamp", "status", "payload", "history_indices", "response", "sync_attempts")

    @property
    def is_pending(self) -> bool:
        return self.status == PayloadStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "timestamp": self.timestamp,
                "status": self.status.value,
                "payload": self.payload,
            }
        )
        if self.history_indices is not None:
            data["history_indices"] = self.history_indices
        if self.response is not None:
            data["response"] = self.response
        if self.sync_attempts:
            data["sync_attempts"] = self.sync_attempts
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayloadRecord:
        try:
            status = PayloadStatus(data.get("status", PayloadStatus.PENDING.value))
        except ValueError:
            # Unknown statuses are never sent again
            status = PayloadStatus.FAILED
        return cls(
            timestamp=data.get("timestamp", 0),
            status=status,
            payload=data.get("payload") or {},
            history_indices=data.get("history_indices"),
            response=data.get("response"),
            sync_attempts=data.get("sync_attempts", 0),
            extra={k: v for k, v in data.items() if k not in cls._FIELDS},
        )
