"""
Shared test configuration and fixtures.

Provides a fake backend (a real aiohttp application served on a local
port) that records every request and answers from per-path scripts, a
controllable clock, and a session store rooted in a temp directory.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from agent_session_sync.config import SyncConfig
from agent_session_sync.local.session_store import SessionStore
from agent_session_sync.local.types import (
    CorrelationResult,
    CorrelationStatus,
    SessionRecord,
)
from agent_session_sync.processors.base import ProcessingContext, SessionSnapshot

logger = logging.getLogger(__name__)

NO_DELAYS = (0.0, 0.0, 0.0)


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: dict[str, str]
    body: Any


@dataclass
class FakeBackend:
    """Backend double that records requests and replays scripted responses.

    ``script(path, [(status, body), ...])`` queues responses for a path;
    once the queue is empty the default response for the endpoint is used.
    ``fail_always(path, status)`` makes a path fail on every call.
    """

    base_url: str = ""
    requests: list[RecordedRequest] = field(default_factory=list)
    scripts: dict[str, list[tuple[int, Any]]] = field(default_factory=dict)
    permanent: dict[str, tuple[int, Any]] = field(default_factory=dict)
    delay: float = 0.0

    def script(self, path: str, responses: list[tuple[int, Any]]) -> None:
        self.scripts.setdefault(path, []).extend(responses)

    def fail_always(self, path: str, status: int = 500, body: Any = None) -> None:
        self.permanent[path] = (status, body or {"message": "boom"})

    def calls(self, path: str | None = None) -> list[RecordedRequest]:
        return [r for r in self.requests if path is None or r.path == path]

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.json() if request.can_read_body else None
        self.requests.append(
            RecordedRequest(request.method, request.path, dict(request.headers), body)
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        if request.path in self.permanent:
            status, payload = self.permanent[request.path]
        elif self.scripts.get(request.path):
            status, payload = self.scripts[request.path].pop(0)
        else:
            status, payload = 200, self._default(request.path, body)
        return web.json_response(payload, status=status)

    def _default(self, path: str, body: Any) -> dict[str, Any]:
        if path.startswith("/v1/conversations/"):
            conversation_id = path.split("/")[3]
            history = (body or {}).get("history", [])
            return {
                "conversation_id": conversation_id,
                "new_messages": len(history),
                "total_messages": len(history),
                "created": True,
            }
        return {"success": True, "message": "accepted"}


@pytest.fixture
async def backend() -> AsyncIterator[FakeBackend]:
    """Fake backend served on a local port."""
    fake = FakeBackend()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", fake.handle)
    server = TestServer(app)
    await server.start_server()
    fake.base_url = str(server.make_url("/"))
    yield fake
    await server.close()


class FakeClock:
    """Epoch-ms clock advanced manually."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.value = start

    def __call__(self) -> int:
        return self.value

    def advance(self, ms: int) -> None:
        self.value += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sessions_dir(tmp_path: Path) -> Path:
    path = tmp_path / "sessions"
    path.mkdir()
    return path


@pytest.fixture
def store(sessions_dir: Path, clock: FakeClock) -> SessionStore:
    return SessionStore(sessions_dir, clock=clock)


@pytest.fixture
def make_record() -> Callable[..., SessionRecord]:
    """Factory for matched, active session records."""

    def _make(session_id: str = "sess-1", **overrides: Any) -> SessionRecord:
        values: dict[str, Any] = {
            "session_id": session_id,
            "agent_name": "claude",
            "provider": "ai-run-sso",
            "start_time": 1_700_000_000_000,
            "working_directory": "/work/project",
            "correlation": CorrelationResult(
                status=CorrelationStatus.MATCHED,
                agent_session_id="ext-1",
                agent_session_file="/tmp/t.jsonl",
            ),
        }
        values.update(overrides)
        return SessionRecord(**values)

    return _make


@pytest.fixture
def make_context(sessions_dir: Path) -> Callable[..., ProcessingContext]:
    """Factory for processing contexts with zero retry delays."""

    def _make(base_url: str = "", **overrides: Any) -> ProcessingContext:
        values: dict[str, Any] = {
            "api_base_url": base_url,
            "cookies": "session=abc",
            "version": "1.2.3",
            "retry_delays": NO_DELAYS,
            "timeout": 5.0,
            "sessions_dir": sessions_dir,
            "session_id": "sess-1",
        }
        values.update(overrides)
        return ProcessingContext(**values)

    return _make


@pytest.fixture
def snapshot() -> SessionSnapshot:
    return SessionSnapshot(
        session_id="sess-1", agent_name="claude", agent_display_name="Claude Code"
    )


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., SyncConfig]:
    """Factory for SyncConfig rooted in the temp directory."""

    def _make(**overrides: Any) -> SyncConfig:
        values: dict[str, Any] = {
            "agent_name": "claude",
            "session_id": "sess-1",
            "provider": "ai-run-sso",
            "cookies": "session=abc",
            "version": "1.2.3",
            "retry_delays": NO_DELAYS,
            "timeout": 5.0,
            "status_timeout": 5.0,
            "home_dir": tmp_path,
        }
        values.update(overrides)
        return SyncConfig(**values)

    return _make
