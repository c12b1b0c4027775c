"""
Session sync processors.

Each processor drains one payload queue to the backend; the pipeline runs
them in priority order.
"""

from .base import ProcessingContext, ProcessingResult, SessionProcessor, SessionSnapshot
from .conversations import ConversationSyncProcessor
from .metrics import MetricsSyncProcessor
from .pipeline import PipelineResult, ProcessorPipeline
from .queue import PayloadRecord, PayloadStatus
from .sync_base import PendingQueueProcessor, SendOutcome

__all__ = [
    "ConversationSyncProcessor",
    "MetricsSyncProcessor",
    "PayloadRecord",
    "PayloadStatus",
    "PendingQueueProcessor",
    "PipelineResult",
    "ProcessingContext",
    "ProcessingResult",
    "ProcessorPipeline",
    "SendOutcome",
    "SessionProcessor",
    "SessionSnapshot",
]
