"""
Session record types.

The session record is the single source of truth for a wrapped agent
session: who started it, how it correlates with the agent's own session
identity, how long it was active and how far each sync processor got.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SessionStatus(Enum):
    """Lifecycle status of a session record."""

    ACTIVE = "active"
    COMPLETED = "completed"  # Terminal, reached only via SessionEnd


class CorrelationStatus(Enum):
    """Whether the agent's own session was linked to the record."""

    MATCHED = "matched"
    UNMATCHED = "unmatched"


@dataclass
class CorrelationResult:
    """Link between the internal session and the agent's session/transcript."""

    status: CorrelationStatus = CorrelationStatus.UNMATCHED
    agent_session_id: str | None = None
    agent_session_file: str | None = None
    detected_at: int | None = None  # epoch ms
    retry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value, "retry_count": self.retry_count}
        if self.agent_session_id is not None:
            data["agent_session_id"] = self.agent_session_id
        if self.agent_session_file is not None:
            data["agent_session_file"] = self.agent_session_file
        if self.detected_at is not None:
            data["detected_at"] = self.detected_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CorrelationResult:
        return cls(
            status=CorrelationStatus(data.get("status", CorrelationStatus.UNMATCHED.value)),
            agent_session_id=data.get("agent_session_id"),
            agent_session_file=data.get("agent_session_file"),
            detected_at=data.get("detected_at"),
            retry_count=data.get("retry_count", 0),
        )

    @property
    def is_matched(self) -> bool:
        return self.status == CorrelationStatus.MATCHED


@dataclass
class SessionRecord:
    """Per-session metadata stored as ``{sessions_dir}/{session_id}.json``.

    ``sync`` holds one section per processor (``conversations``,
    ``metrics``) with that processor's watermark and counters. Keys found
    on disk that this class does not know about are kept in ``extra`` and
    written back unchanged.
    """

    session_id: str
    agent_name: str
    provider: str
    start_time: int  # epoch ms
    working_directory: str
    status: SessionStatus = SessionStatus.ACTIVE
    project: str | None = None
    model: str | None = None
    end_time: int | None = None
    git_branch: str | None = None
    active_duration_ms: int = 0
    active_since: int | None = None  # epoch ms of the open activity interval
    correlation: CorrelationResult = field(default_factory=CorrelationResult)
    sync: dict[str, dict[str, Any]] = field(default_factory=dict)
    status_reason: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        "session_id",
        "agent_name",
        "provider",
        "start_time",
        "working_directory",
        "status",
        "project",
        "model",
        "end_time",
        "git_branch",
        "active_duration_ms",
        "active_since",
        "correlation",
        "sync",
        "status_reason",
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary, omitting unset optional fields."""
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "session_id": self.session_id,
                "agent_name": self.agent_name,
                "provider": self.provider,
                "start_time": self.start_time,
                "working_directory": self.working_directory,
                "status": self.status.value,
                "active_duration_ms": self.active_duration_ms,
                "correlation": self.correlation.to_dict(),
            }
        )
        optional = {
            "project": self.project,
            "model": self.model,
            "end_time": self.end_time,
            "git_branch": self.git_branch,
            "active_since": self.active_since,
            "status_reason": self.status_reason,
        }
        for key, value in optional.items():
            if value is not None:
                data[key] = value
        if self.sync:
            data["sync"] = self.sync
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        """Deserialize from dictionary."""
        return cls(
            session_id=data["session_id"],
            agent_name=data.get("agent_name", "unknown"),
            provider=data.get("provider", "unknown"),
            start_time=data.get("start_time", 0),
            working_directory=data.get("working_directory", ""),
            status=SessionStatus(data.get("status", SessionStatus.ACTIVE.value)),
            project=data.get("project"),
            model=data.get("model"),
            end_time=data.get("end_time"),
            git_branch=data.get("git_branch"),
            active_duration_ms=data.get("active_duration_ms", 0),
            active_since=data.get("active_since"),
            correlation=CorrelationResult.from_dict(data.get("correlation", {})),
            sync=data.get("sync") or {},
            status_reason=data.get("status_reason"),
            extra={k: v for k, v in data.items() if k not in cls._FIELDS},
        )

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED
