"""
Agent Session Sync

Session lifecycle and telemetry sync for CLIs that wrap AI coding agents.

Provides:
- Hook event routing (SessionStart, Stop, SubagentStop, SessionEnd, ...)
- Session records with correlation and active-time tracking
- Atomic JSON/JSONL storage for records and payload queues
- Priority-ordered sync processors with at-least-once delivery
- A retrying backend client with an explicit backoff table

Usage:

    >>> from agent_session_sync import (
    ...     AgentPlugin, ConversationSyncProcessor, HookEventRouter,
    ...     MetricsSyncProcessor, ProcessorPipeline, SessionStore, SyncConfig,
    ... )
    >>> config = SyncConfig.from_env()
    >>> router = HookEventRouter(
    ...     config,
    ...     AgentPlugin(name="claude", display_name="Claude Code"),
    ...     SessionStore(config.sessions_dir),
    ...     ProcessorPipeline([MetricsSyncProcessor(), ConversationSyncProcessor()]),
    ... )
    >>> await router.process_event(event)
"""

from .api import (
    ApiClient,
    ApiClientConfig,
    ApiResponse,
    ConversationApiClient,
    McpConfigSummary,
    MetricsApiClient,
    RetryPolicy,
    SessionStatusPayload,
)
from .config import SyncConfig, load_settings
from .exceptions import (
    ApiRequestError,
    ConfigurationError,
    InvalidHookEventError,
    SessionSyncError,
    SessionValidationError,
    StorageIOError,
)
from .hooks import (
    AdapterResult,
    AgentPlugin,
    EventTransformer,
    HookEvent,
    HookEventName,
    HookEventRouter,
    McpSummaryProvider,
    SessionAdapter,
)
from .local import (
    CorrelationResult,
    CorrelationStatus,
    SessionRecord,
    SessionStatus,
    SessionStore,
)
from .logging_utils import SessionLoggerAdapter, configure_structured_logging
from .processors import (
    ConversationSyncProcessor,
    MetricsSyncProcessor,
    PayloadRecord,
    PayloadStatus,
    PipelineResult,
    ProcessingContext,
    ProcessingResult,
    ProcessorPipeline,
    SessionProcessor,
    SessionSnapshot,
)

__version__ = "0.1.0"

__all__ = [
    # API
    "ApiClient",
    "ApiClientConfig",
    "ApiResponse",
    "ConversationApiClient",
    "McpConfigSummary",
    "MetricsApiClient",
    "RetryPolicy",
    "SessionStatusPayload",
    # Config
    "SyncConfig",
    "load_settings",
    # Exceptions
    "ApiRequestError",
    "ConfigurationError",
    "InvalidHookEventError",
    "SessionSyncError",
    "SessionValidationError",
    "StorageIOError",
    # Hooks
    "AdapterResult",
    "AgentPlugin",
    "EventTransformer",
    "HookEvent",
    "HookEventName",
    "HookEventRouter",
    "McpSummaryProvider",
    "SessionAdapter",
    # Local storage
    "CorrelationResult",
    "CorrelationStatus",
    "SessionRecord",
    "SessionStatus",
    "SessionStore",
    # Logging
    "SessionLoggerAdapter",
    "configure_structured_logging",
    # Processors
    "ConversationSyncProcessor",
    "MetricsSyncProcessor",
    "PayloadRecord",
    "PayloadStatus",
    "PipelineResult",
    "ProcessingContext",
    "ProcessingResult",
    "ProcessorPipeline",
    "SessionProcessor",
    "SessionSnapshot",
]
