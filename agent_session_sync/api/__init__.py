"""Backend API clients with retry."""

from .client import ApiClient, ApiClientConfig, ApiResponse
from .conversations import DEFAULT_ASSISTANT_ID, ConversationApiClient, ConversationSyncResponse
from .metrics import McpConfigSummary, MetricsApiClient, SessionStatusPayload
from .retry import RetryPolicy, retry_with_policy

__all__ = [
    "DEFAULT_ASSISTANT_ID",
    "ApiClient",
    "ApiClientConfig",
    "ApiResponse",
    "ConversationApiClient",
    "ConversationSyncResponse",
    "McpConfigSummary",
    "MetricsApiClient",
    "RetryPolicy",
    "SessionStatusPayload",
    "retry_with_policy",
]
