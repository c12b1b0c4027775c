"""Metrics upload and session status pings.

Both go to POST /v1/metrics. The endpoint can answer 200 with
``{"success": false}``; that is treated as a retryable failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .client import ApiClient, ApiClientConfig, ApiResponse

logger = logging.getLogger(__name__)

METRICS_PATH = "/v1/metrics"
SESSION_STATUS_METRIC = "codemie_cli_session_total"


@dataclass
class McpConfigSummary:
    """Counts of MCP servers configured for the agent."""

    total_servers: int = 0
    local_servers: int = 0
    project_servers: int = 0
    user_servers: int = 0
    server_names: list[str] = field(default_factory=list)

    def to_attributes(self) -> dict[str, Any]:
        return {
            "mcp_total_servers": self.total_servers,
            "mcp_local_servers": self.local_servers,
            "mcp_project_servers": self.project_servers,
            "mcp_user_servers": self.user_servers,
            "mcp_server_names": list(self.server_names),
        }


@dataclass
class SessionStatusPayload:
    """Session lifecycle status sent as a status metric."""

    status: str  # "started" | "completed"
    session_id: str
    agent_name: str
    provider: str
    reason: str | None = None
    project: str | None = None
    model: str | None = None
    working_directory: str | None = None
    git_branch: str | None = None
    session_duration_ms: int | None = None
    active_duration_ms: int | None = None
    mcp_summary: McpConfigSummary | None = None

    def to_metric(self) -> dict[str, Any]:
        attributes: dict[str, Any] = {
            "status": self.status,
            "session_id": self.session_id,
            "agent": self.agent_name,
            "provider": self.provider,
        }
        optional = {
            "reason": self.reason,
            "project": self.project,
            "llm_model": self.model,
            "working_directory": self.working_directory,
            "branch": self.git_branch,
            "session_duration_ms": self.session_duration_ms,
            "active_duration_ms": self.active_duration_ms,
        }
        attributes.update({k: v for k, v in optional.items() if v is not None})
        if self.mcp_summary is not None:
            attributes.update(self.mcp_summary.to_attributes())
        return {"name": SESSION_STATUS_METRIC, "attributes": attributes}


def _reject_unsuccessful(data: dict[str, Any]) -> str | None:
    if data.get("success") is False:
        return f"API reported failure: {data.get('message', 'unknown error')}"
    return None


class MetricsApiClient:
    """Sends metric bodies to the backend."""

    def __init__(self, config: ApiClientConfig) -> None:
        self.client = ApiClient(config, name="MetricsApiClient")

    async def send_metric(self, metric: dict[str, Any]) -> ApiResponse:
        """Send one metric body (``{name, attributes, ...}``)."""
        response = await self.client.request(
            "POST",
            METRICS_PATH,
            metric,
            dry_run_data={"success": True, "message": "[DRY-RUN] metric logged"},
            reject=_reject_unsuccessful,
        )
        if response.success:
            logger.debug(f"Metric {metric.get('name')} sent: {response.data.get('message', 'OK')}")
        return response

    async def send_session_status(self, status: SessionStatusPayload) -> ApiResponse:
        """Send a session lifecycle ping."""
        response = await self.send_metric(status.to_metric())
        if response.success:
            logger.info(f"Session {status.status} status sent for {status.session_id}")
        else:
            logger.warning(
                f"Session {status.status} status for {status.session_id} failed: {response.message}"
            )
        return response
