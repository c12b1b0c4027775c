"""
Hook event types.

Agents deliver lifecycle events as JSON objects of the shape
``{session_id, hook_event_name, transcript_path, ...}``. Event-specific
fields: SessionStart{source, cwd?}, SessionEnd{reason, cwd},
SubagentStop{agent_id, agent_transcript_path, stop_hook_active, cwd}.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..exceptions import InvalidHookEventError

REQUIRED_FIELDS = ("session_id", "hook_event_name", "transcript_path")


class HookEventName(str, Enum):
    """Event names the router dispatches on."""

    SESSION_START = "SessionStart"
    SESSION_END = "SessionEnd"
    STOP = "Stop"
    SUBAGENT_STOP = "SubagentStop"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    PRE_COMPACT = "PreCompact"
    PERMISSION_REQUEST = "PermissionRequest"


def validate_event(raw: Mapping[str, Any]) -> None:
    """Raise InvalidHookEventError for the first missing required field."""
    event_name = raw.get("hook_event_name") or None
    for name in REQUIRED_FIELDS:
        if not raw.get(name):
            raise InvalidHookEventError(name, event_name)


@dataclass
class HookEvent:
    """A validated hook event in internal format."""

    session_id: str  # the agent's own session id
    hook_event_name: str
    transcript_path: str
    permission_mode: str = "default"
    cwd: str | None = None
    source: str | None = None  # SessionStart: startup, resume, clear
    reason: str | None = None  # SessionEnd: exit, logout, clear
    agent_id: str | None = None
    agent_transcript_path: str | None = None
    stop_hook_active: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        "session_id",
        "hook_event_name",
        "transcript_path",
        "permission_mode",
        "cwd",
        "source",
        "reason",
        "agent_id",
        "agent_transcript_path",
        "stop_hook_active",
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HookEvent:
        validate_event(data)
        return cls(
            session_id=data["session_id"],
            hook_event_name=data["hook_event_name"],
            transcript_path=data["transcript_path"],
            permission_mode=data.get("permission_mode") or "default",
            cwd=data.get("cwd"),
            source=data.get("source"),
            reason=data.get("reason"),
            agent_id=data.get("agent_id"),
            agent_transcript_path=data.get("agent_transcript_path"),
            stop_hook_active=bool(data.get("stop_hook_active", False)),
            extra={k: v for k, v in data.items() if k not in cls._FIELDS},
        )
