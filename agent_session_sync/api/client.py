"""
HTTP client for the session sync backend.

Wraps aiohttp with the backend's identity headers, a per-attempt timeout
and the retry policy. HTTP-level failures never raise: every outcome is
returned as an ApiResponse so that callers can leave payloads queued.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import aiohttp

from ..exceptions import ApiRequestError, ConfigurationError
from .retry import (
    DEFAULT_NON_RETRYABLE_STATUSES,
    DEFAULT_RETRY_DELAYS,
    RetryPolicy,
    retry_with_policy,
)

if TYPE_CHECKING:
    from ..processors.base import ProcessingContext

logger = logging.getLogger(__name__)


@dataclass
class ApiClientConfig:
    """Connection settings for the backend API."""

    base_url: str | None = None
    api_key: str | None = None  # sent as the user-id header, wins over cookies
    cookies: str | None = None
    timeout: float = 30.0  # seconds, per attempt
    retry_attempts: int = 3
    retry_delays: tuple[float, ...] = DEFAULT_RETRY_DELAYS
    non_retryable_statuses: frozenset[int] = DEFAULT_NON_RETRYABLE_STATUSES
    client_type: str = "codemie-cli"
    version: str = "0.0.0"
    dry_run: bool = False

    @classmethod
    def from_context(cls, context: ProcessingContext, **overrides: Any) -> ApiClientConfig:
        """Build a client config from a processing context."""
        values: dict[str, Any] = {
            "base_url": context.api_base_url or None,
            "api_key": context.api_key,
            "cookies": context.cookies or None,
            "timeout": context.timeout,
            "retry_attempts": context.retry_attempts,
            "retry_delays": tuple(context.retry_delays),
            "client_type": context.client_type,
            "version": context.version,
            "dry_run": context.dry_run,
        }
        values.update(overrides)
        return cls(**values)

    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-CodeMie-CLI": f"{self.client_type}/{self.version}",
            "X-CodeMie-Client": self.client_type,
            "User-Agent": f"{self.client_type}/{self.version}",
        }
        if self.api_key:
            headers["user-id"] = self.api_key
        elif self.cookies:
            headers["Cookie"] = self.cookies
        return headers


@dataclass
class ApiResponse:
    """Outcome of one logical API request (after retries)."""

    success: bool
    message: str
    status_code: int | None = None
    data: dict[str, Any] = field(default_factory=dict)


class ApiClient:
    """
    Retrying JSON client for the backend.

    Example:
        >>> client = ApiClient(ApiClientConfig(base_url="https://api.example.com"))
        >>> response = await client.request("POST", "/v1/metrics", {"name": "x"})
        >>> response.success
        True
    """

    def __init__(self, config: ApiClientConfig, name: str = "ApiClient") -> None:
        if not config.base_url and not config.dry_run:
            raise ConfigurationError("base_url", "API base URL is required unless dry_run is set")
        self.config = config
        self.name = name
        self.policy = RetryPolicy(
            max_attempts=config.retry_attempts,
            retry_delays=tuple(config.retry_delays),
            non_retryable_statuses=frozenset(config.non_retryable_statuses),
        )

    def url_for(self, path: str) -> str:
        base = (self.config.base_url or "").rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        dry_run_data: dict[str, Any] | None = None,
        reject: Callable[[dict[str, Any]], str | None] | None = None,
    ) -> ApiResponse:
        """Send a JSON request with retries.

        Args:
            method: HTTP method
            path: Path relative to base_url
            body: JSON body
            dry_run_data: Synthetic response data returned in dry-run mode
            reject: Inspects a 2xx body and returns an error message to
                treat the response as a retryable failure

        Returns:
            ApiResponse; never raises on HTTP or network failure
        """
        url = self.url_for(path)

        if self.config.dry_run:
            logger.info(
                f"[{self.name}] DRY-RUN: would send {method} {url}: "
                f"{json.dumps(body, ensure_ascii=False, default=str)}"
            )
            return ApiResponse(
                success=True,
                message=f"[DRY-RUN] {method} {path} logged (not sent)",
                data=dict(dry_run_data or {}),
            )

        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        try:
            async with aiohttp.ClientSession(
                timeout=timeout, headers=self.config.headers()
            ) as session:
                status, data = await retry_with_policy(
                    self._send_once,
                    session,
                    method,
                    url,
                    body,
                    reject,
                    policy=self.policy,
                    context_msg=f"{self.name} {method} {path}",
                )
        except ApiRequestError as e:
            return ApiResponse(success=False, message=e.message, status_code=e.status_code)

        return ApiResponse(success=True, message="OK", status_code=status, data=data)

    async def _send_once(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        body: dict[str, Any] | None,
        reject: Callable[[dict[str, Any]], str | None] | None,
    ) -> tuple[int, dict[str, Any]]:
        try:
            async with session.request(method, url, json=body) as response:
                text = await response.text()
                data = _parse_body(text)
                if not 200 <= response.status < 300:
                    detail = data.get("message") or response.reason or text[:200]
                    raise ApiRequestError(
                        f"API error: {response.status} {detail}",
                        status_code=response.status,
                    )
                rejection = reject(data) if reject else None
                if rejection:
                    raise ApiRequestError(rejection, status_code=response.status)
                return response.status, data
        except asyncio.TimeoutError as e:
            raise ApiRequestError(f"Request timeout after {self.config.timeout}s") from e
        except aiohttp.ClientError as e:
            raise ApiRequestError(f"Connection error: {e}") from e


def _parse_body(text: str) -> dict[str, Any]:
    if not text.strip():
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return {"message": text}
    return parsed if isinstance(parsed, dict) else {"data": parsed}
