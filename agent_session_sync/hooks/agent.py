"""
Agent plugin capabilities.

Everything agent-specific reaches the router through an AgentPlugin: how
its hook payloads map onto internal events, how its transcripts become
payload queues, and how its MCP configuration is summarized. Each
capability is optional.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..api.metrics import McpConfigSummary
from ..processors.base import ProcessingContext, ProcessingResult


class EventTransformer(ABC):
    """Converts an agent's raw hook payload to the internal event format."""

    @property
    @abstractmethod
    def agent_name(self) -> str:
        pass

    @abstractmethod
    def transform(self, event: dict[str, Any]) -> dict[str, Any]:
        """Return the event in internal format (may rename the event)."""
        pass


@dataclass
class AdapterResult:
    """Outcome of turning a transcript into payload queue records."""

    success: bool
    total_records: int = 0
    processors: dict[str, ProcessingResult] = field(default_factory=dict)
    failed_processors: list[str] = field(default_factory=list)


class SessionAdapter(ABC):
    """Transforms an agent transcript into pending payload records."""

    @abstractmethod
    async def process_session(
        self,
        transcript_path: str,
        session_id: str,
        context: ProcessingContext,
    ) -> AdapterResult:
        """
        Append new pending payloads for the transcript to the session's queues.

        Args:
            transcript_path: Agent transcript file
            session_id: Internal session id (queue file key)
            context: Processing context

        Returns:
            Per-processor outcome
        """
        pass


class McpSummaryProvider(ABC):
    """Reports the MCP servers configured for an agent."""

    @abstractmethod
    async def get_mcp_config_summary(self, cwd: str) -> McpConfigSummary:
        pass


@dataclass
class AgentPlugin:
    """Agent-specific collaborators handed to the router.

    ``lifecycle`` holds the agent's default lifecycle hooks by name
    (``on_session_start``, ``on_session_end``); provider hooks chain on
    top of them.
    """

    name: str
    display_name: str
    event_name_mapping: Mapping[str, str] = field(default_factory=dict)
    transformer: EventTransformer | None = None
    session_adapter: SessionAdapter | None = None
    mcp_summary_provider: McpSummaryProvider | None = None
    lifecycle: Mapping[str, Callable[..., Any]] = field(default_factory=dict)

    def normalize_event_name(self, name: str) -> str:
        return self.event_name_mapping.get(name, name)

