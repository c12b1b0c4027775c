"""
Hook event router.

Single entry point for lifecycle events delivered by a wrapped agent:

    router = HookEventRouter(config, agent, store, pipeline)
    await router.process_event(json.loads(sys.stdin.read()))

Processing steps:
1. Validate required fields (session_id, hook_event_name, transcript_path)
2. Apply the agent's event transformer (on failure the original is used)
3. Normalize the event name through the agent's mapping table
4. Dispatch to the handler; unknown events are ignored

Handler failures are logged with timing and re-raised. Best-effort side
calls (status pings, MCP detection, lifecycle hooks, activity tracking)
log their own failures and never change the outcome of the event.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from ..api.client import ApiClientConfig
from ..api.metrics import McpConfigSummary, MetricsApiClient, SessionStatusPayload
from ..config import SyncConfig
from ..exceptions import ConfigurationError
from ..git_utils import detect_git_branch
from ..local.session_store import SessionStore
from ..local.types import CorrelationResult, CorrelationStatus, SessionRecord, SessionStatus
from ..logging_utils import SessionLoggerAdapter
from ..processors.base import SessionSnapshot
from ..processors.pipeline import PipelineResult, ProcessorPipeline
from .agent import AgentPlugin
from .events import HookEvent, HookEventName, validate_event
from .lifecycle import LifecycleHook, ProviderHooks, resolve_hook_chain, run_hook_chain

logger = logging.getLogger(__name__)

StatusClientFactory = Callable[[ApiClientConfig], MetricsApiClient]


class HookEventRouter:
    """Routes hook events to session lifecycle handlers."""

    def __init__(
        self,
        config: SyncConfig,
        agent: AgentPlugin,
        store: SessionStore,
        pipeline: ProcessorPipeline,
        *,
        provider_hooks: ProviderHooks | None = None,
        status_client_factory: StatusClientFactory | None = None,
    ) -> None:
        """
        Args:
            config: Invocation config (session id, provider, API settings)
            agent: Agent-specific collaborators
            store: Session record store
            pipeline: Sync processors run on Stop/SubagentStop/SessionEnd
            provider_hooks: Provider lifecycle hooks keyed by agent name or "*"
            status_client_factory: Builds the client for status pings
        """
        self.config = config
        self.agent = agent
        self.store = store
        self.pipeline = pipeline
        self._status_client_factory = status_client_factory or MetricsApiClient
        self.log = SessionLoggerAdapter(
            logger,
            {
                "session_id": config.session_id,
                "agent": config.agent_name,
                "profile": config.profile_name,
            },
        )

        self._session_start_hooks = resolve_hook_chain(
            provider_hooks, agent.name, "on_session_start", agent.lifecycle.get("on_session_start")
        )
        self._session_end_hooks = resolve_hook_chain(
            provider_hooks, agent.name, "on_session_end", agent.lifecycle.get("on_session_end")
        )

        self._handlers: dict[str, Callable[[HookEvent], Awaitable[None]]] = {
            HookEventName.SESSION_START.value: self.handle_session_start,
            HookEventName.SESSION_END.value: self.handle_session_end,
            HookEventName.STOP.value: self.handle_stop,
            HookEventName.SUBAGENT_STOP.value: self.handle_subagent_stop,
            HookEventName.USER_PROMPT_SUBMIT.value: self.handle_user_prompt_submit,
            HookEventName.PRE_COMPACT.value: self.handle_pre_compact,
            HookEventName.PERMISSION_REQUEST.value: self.handle_permission_request,
        }

    async def process_event(self, raw: Mapping[str, Any]) -> None:
        """Validate, transform, normalize and dispatch one hook event.

        Raises:
            InvalidHookEventError: If a required field is missing
            Exception: Whatever the handler raised
        """
        started = time.monotonic()
        validate_event(raw)

        transformed = self._transform(dict(raw))
        name = self.agent.normalize_event_name(transformed.get("hook_event_name") or "")
        event = HookEvent.from_dict({**transformed, "hook_event_name": name})

        handler = self._handlers.get(name)
        if handler is None:
            self.log.info(f"[hook:router] Ignoring unsupported event: {name}")
            return

        self.log.debug(f"[hook:router] Dispatching {name} (agent session {event.session_id})")
        try:
            await handler(event)
        except Exception as e:
            elapsed = _elapsed_ms(started)
            self.log.error(f"[hook:{name}] Failed after {elapsed}ms: {e}", exc_info=True)
            raise

        self.log.info(f"[hook:{name}] Completed in {_elapsed_ms(started)}ms")

    def _transform(self, event: dict[str, Any]) -> dict[str, Any]:
        transformer = self.agent.transformer
        if transformer is None:
            return event
        try:
            return transformer.transform(dict(event))
        except Exception as e:
            self.log.warning(
                f"[hook:router] Transformer {transformer.agent_name} failed, "
                f"using original event: {e}"
            )
            return event

    # Handlers

    async def handle_session_start(self, event: HookEvent) -> None:
        if not self.config.agent_name:
            raise ConfigurationError("agent_name", "required to create a session record")
        if not self.config.provider:
            raise ConfigurationError("provider", "required to create a session record")

        now = self.store.now()
        working_directory = event.cwd or os.getcwd()
        git_branch = await self._detect_branch(working_directory)

        record = SessionRecord(
            session_id=self.config.session_id,
            agent_name=self.config.agent_name,
            provider=self.config.provider,
            start_time=now,
            working_directory=working_directory,
            status=SessionStatus.ACTIVE,
            project=self.config.project,
            model=self.config.model,
            git_branch=git_branch,
            active_duration_ms=0,
            correlation=CorrelationResult(
                status=CorrelationStatus.MATCHED,
                agent_session_id=event.session_id,
                agent_session_file=event.transcript_path,
                detected_at=now,
            ),
        )
        await self.store.save_session(record)
        self.log.info(
            f"[hook:SessionStart] Session created: id={record.session_id} "
            f"agent={record.agent_name} provider={record.provider} "
            f"agent_session={event.session_id}"
        )

        mcp_summary = await self._detect_mcp_summary(working_directory)
        await self._send_status(
            SessionStatusPayload(
                status="started",
                session_id=record.session_id,
                agent_name=record.agent_name,
                provider=record.provider,
                reason=event.source,
                project=record.project,
                model=record.model,
                working_directory=working_directory,
                git_branch=git_branch,
                mcp_summary=mcp_summary,
            )
        )
        await self._run_lifecycle("on_session_start", self._session_start_hooks, record, event)

    async def handle_stop(self, event: HookEvent) -> None:
        await self._accumulate_active_duration("Stop")
        await self._sync(event, "Stop")

    async def handle_subagent_stop(self, event: HookEvent) -> None:
        await self._accumulate_active_duration("SubagentStop")
        await self._sync(event, "SubagentStop")

    async def handle_session_end(self, event: HookEvent) -> None:
        session_id = self.config.session_id
        await self._accumulate_active_duration("SessionEnd")
        await self._sync(event, "SessionEnd")

        record = await self.store.load_session(session_id)
        if record is not None:
            end = self.store.now()
            await self._send_status(
                SessionStatusPayload(
                    status="completed",
                    session_id=record.session_id,
                    agent_name=record.agent_name,
                    provider=record.provider,
                    reason=event.reason,
                    project=record.project,
                    model=record.model,
                    working_directory=record.working_directory,
                    git_branch=record.git_branch,
                    session_duration_ms=max(0, end - record.start_time),
                    active_duration_ms=record.active_duration_ms,
                )
            )
            await self._run_lifecycle("on_session_end", self._session_end_hooks, record, event)
        else:
            self.log.warning(f"[hook:SessionEnd] Session not found: {session_id}")

        updated = await self.store.update_status(session_id, SessionStatus.COMPLETED, event.reason)
        if updated is not None:
            self.log.info(
                f"[hook:SessionEnd] Session status updated: id={session_id} "
                f"status={updated.status.value} reason={event.reason}"
            )

        errors = await self.store.archive_session_files(session_id)
        if errors:
            self.log.warning(f"[hook:SessionEnd] Some files were not archived: {'; '.join(errors)}")
        else:
            self.log.info(f"[hook:SessionEnd] Session files archived for {session_id}")

    async def handle_user_prompt_submit(self, event: HookEvent) -> None:
        try:
            await self.store.start_activity_tracking(self.config.session_id)
        except Exception as e:
            self.log.warning(f"[hook:UserPromptSubmit] Activity tracking failed: {e}")

    async def handle_pre_compact(self, event: HookEvent) -> None:
        self.log.debug(f"[hook:PreCompact] agent session {event.session_id}")

    async def handle_permission_request(self, event: HookEvent) -> None:
        self.log.debug(f"[hook:PermissionRequest] agent session {event.session_id}")

    # Steps

    async def _accumulate_active_duration(self, event_name: str) -> int:
        try:
            delta = await self.store.accumulate_active_duration(self.config.session_id)
        except Exception as e:
            self.log.warning(f"[hook:{event_name}] Failed to accumulate active duration: {e}")
            return 0
        if delta:
            self.log.debug(f"[hook:{event_name}] Active duration +{delta}ms")
        return delta

    async def _sync(self, event: HookEvent, event_name: str) -> PipelineResult | None:
        """Run the session adapter on the transcript, then the sync pipeline."""
        session_id = self.config.session_id
        record = await self.store.load_session(session_id)
        if record is None:
            self.log.warning(f"[hook:{event_name}] Session not found, skipping sync: {session_id}")
            return None
        if not record.correlation.is_matched:
            self.log.warning(
                f"[hook:{event_name}] Session not correlated "
                f"(status: {record.correlation.status.value}), skipping sync"
            )
            return None

        context = self.config.processing_context(
            agent_session_id=record.correlation.agent_session_id or event.session_id,
            agent_session_file=event.transcript_path,
        )

        adapter = self.agent.session_adapter
        if adapter is not None:
            try:
                adapted = await adapter.process_session(event.transcript_path, session_id, context)
            except Exception as e:
                self.log.error(f"[hook:{event_name}] Session adapter failed: {e}")
            else:
                for name in adapted.failed_processors:
                    result = adapted.processors.get(name)
                    message = result.message if result else "unknown error"
                    self.log.error(
                        f"[hook:{event_name}] Adapter processor {name} failed: {message}"
                    )
                self.log.debug(
                    f"[hook:{event_name}] Adapter queued {adapted.total_records} record(s)"
                )

        if not self.config.metrics_enabled:
            self.log.debug(
                f"[hook:{event_name}] Remote sync disabled for provider {record.provider}"
            )
            return None

        snapshot = SessionSnapshot(
            session_id=session_id,
            agent_name=record.agent_name,
            agent_display_name=self.agent.display_name,
            sync={section: dict(values) for section, values in record.sync.items()},
        )
        result = await self.pipeline.run(snapshot, context)

        for processor_result in result.processor_results.values():
            section = processor_result.sync_section
            updates = processor_result.sync_updates
            if section and updates:
                await self.store.apply_sync_updates(session_id, section, updates)

        if result.success:
            self.log.info(f"[hook:{event_name}] Sync complete: {result.message}")
        else:
            self.log.warning(f"[hook:{event_name}] Sync had failures: {result.message}")
        return result

    async def _detect_branch(self, working_directory: str) -> str | None:
        try:
            return await detect_git_branch(working_directory)
        except Exception as e:
            self.log.debug(f"[hook:SessionStart] Git branch detection failed: {e}")
            return None

    async def _detect_mcp_summary(self, working_directory: str) -> McpConfigSummary | None:
        provider = self.agent.mcp_summary_provider
        if provider is None or not self.config.metrics_enabled:
            return None
        try:
            summary = await provider.get_mcp_config_summary(working_directory)
        except Exception as e:
            self.log.debug(f"[hook:SessionStart] MCP detection failed, continuing without it: {e}")
            return None
        self.log.debug(f"[hook:SessionStart] MCP servers detected: {summary.total_servers}")
        return summary

    async def _send_status(self, status: SessionStatusPayload) -> None:
        label = "SessionStart" if status.status == "started" else "SessionEnd"
        if not self.config.metrics_enabled:
            self.log.debug(
                f"[hook:{label}] Skipping status ping for provider {self.config.provider}"
            )
            return

        try:
            client = self._status_client_factory(
                ApiClientConfig(
                    base_url=self.config.api_base_url,
                    api_key=self.config.api_key,
                    cookies=self.config.cookies,
                    timeout=self.config.status_timeout,
                    retry_attempts=self.config.status_retry_attempts,
                    retry_delays=self.config.retry_delays,
                    client_type=self.config.client_type,
                    version=self.config.version,
                    dry_run=self.config.dry_run,
                )
            )
            response = await client.send_session_status(status)
        except Exception as e:
            self.log.warning(f"[hook:{label}] Status ping failed: {e}")
            return
        if not response.success:
            self.log.warning(f"[hook:{label}] Status ping rejected: {response.message}")

    async def _run_lifecycle(
        self,
        hook_name: str,
        chain: list[LifecycleHook],
        record: SessionRecord,
        event: HookEvent,
    ) -> None:
        if not chain:
            return
        try:
            await run_hook_chain(chain, record, event)
        except Exception as e:
            self.log.warning(
                f"[hook:{event.hook_event_name}] Lifecycle hook {hook_name} failed: {e}"
            )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
