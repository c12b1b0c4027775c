"""Hook event routing for wrapped agent sessions."""

from .agent import AdapterResult, AgentPlugin, EventTransformer, McpSummaryProvider, SessionAdapter
from .events import HookEvent, HookEventName
from .lifecycle import resolve_hook_chain, run_hook_chain
from .router import HookEventRouter

__all__ = [
    "AdapterResult",
    "AgentPlugin",
    "EventTransformer",
    "HookEvent",
    "HookEventName",
    "HookEventRouter",
    "McpSummaryProvider",
    "SessionAdapter",
    "resolve_hook_chain",
    "run_hook_chain",
]
