"""
Abstract base class for session sync processors.

Each processor owns one payload queue (metrics, conversations) and pushes
its pending records to the remote backend. Processors run in priority
order inside a ProcessorPipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class ProcessingContext:
    """API credentials and identity handed to every processor."""

    api_base_url: str
    cookies: str = ""
    api_key: str | None = None
    client_type: str = "codemie-cli"
    version: str = "0.0.0"
    dry_run: bool = False
    timeout: float = 30.0
    retry_attempts: int = 3
    retry_delays: tuple[float, ...] = (1.0, 2.0, 5.0)
    sessions_dir: Path | None = None

    # Set when processing is triggered by a hook event
    session_id: str | None = None
    agent_session_id: str | None = None
    agent_session_file: str | None = None


@dataclass
class SessionSnapshot:
    """Read-only view of a session record for processors."""

    session_id: str
    agent_name: str
    agent_display_name: str
    sync: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class ProcessingResult:
    """Outcome of one processor run."""

    success: bool
    message: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def sync_updates(self) -> dict[str, Any]:
        return self.metadata.get("sync_updates") or {}

    @property
    def sync_section(self) -> str | None:
        return self.metadata.get("sync_section")


class SessionProcessor(ABC):
    """Abstract base for session processors."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Processor name used in logs and pipeline results."""
        pass

    @property
    @abstractmethod
    def priority(self) -> int:
        """Execution priority (lower runs first)."""
        pass

    @abstractmethod
    def should_process(self, snapshot: SessionSnapshot) -> bool:
        """Whether this processor should run for the session."""
        pass

    @abstractmethod
    async def process(
        self, snapshot: SessionSnapshot, context: ProcessingContext
    ) -> ProcessingResult:
        """
        Sync the session's pending payloads.

        Args:
            snapshot: Session identity and current sync state
            context: API credentials and identity

        Returns:
            Result; sync watermark updates go under metadata["sync_updates"]
        """
        pass
