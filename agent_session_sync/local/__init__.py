"""
Local session storage.

Session records and payload queues live as JSON/JSONL files under the
sessions directory; all rewrites are atomic.
"""

from .session_store import SessionStore
from .types import CorrelationResult, CorrelationStatus, SessionRecord, SessionStatus

__all__ = [
    "CorrelationResult",
    "CorrelationStatus",
    "SessionRecord",
    "SessionStatus",
    "SessionStore",
]
