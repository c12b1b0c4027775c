"""
Processor pipeline.

Runs session processors in priority order (lower first) and aggregates
their results. A processor that raises is recorded as failed and does not
stop the processors after it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .base import ProcessingContext, ProcessingResult, SessionProcessor, SessionSnapshot

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Aggregated outcome of one pipeline run."""

    success: bool
    message: str
    processor_results: dict[str, ProcessingResult] = field(default_factory=dict)
    failed_processors: list[str] = field(default_factory=list)


class ProcessorPipeline:
    """Runs sync processors for one session.

    Example:
        >>> pipeline = ProcessorPipeline([ConversationSyncProcessor(), MetricsSyncProcessor()])
        >>> result = await pipeline.run(snapshot, context)
        >>> result.message
        'Synced 1 metric batches, 2 conversations'
    """

    def __init__(self, processors: list[SessionProcessor]) -> None:
        self.processors = sorted(processors, key=lambda p: p.priority)

    async def run(self, snapshot: SessionSnapshot, context: ProcessingContext) -> PipelineResult:
        logger.debug(
            f"Processing session {snapshot.session_id} with {len(self.processors)} processor(s)"
        )

        results: dict[str, ProcessingResult] = {}
        failed: list[str] = []

        for processor in self.processors:
            if not processor.should_process(snapshot):
                logger.debug(f"Processor {processor.name} skipped (should_process=False)")
                continue

            logger.debug(f"Running processor {processor.name} (priority {processor.priority})")
            try:
                result = await processor.process(snapshot, context)
            except Exception as e:
                logger.error(f"Processor {processor.name} raised: {e}", exc_info=True)
                result = ProcessingResult(success=False, message=str(e))

            results[processor.name] = result
            if result.success:
                logger.debug(f"Processor {processor.name} succeeded: {result.message or 'OK'}")
            else:
                logger.error(f"Processor {processor.name} failed: {result.message}")
                failed.append(processor.name)

        message = _summarize(results, failed)
        logger.info(message)
        return PipelineResult(
            success=not failed,
            message=message,
            processor_results=results,
            failed_processors=failed,
        )


def _summarize(results: dict[str, ProcessingResult], failed: list[str]) -> str:
    if failed:
        return f"Sync completed with {len(failed)}/{len(results)} failures"

    parts = []
    for name, result in results.items():
        synced = result.metadata.get("payloads_synced")
        if synced:
            parts.append(f"{synced} {result.metadata.get('noun', name)}")
    return f"Synced {', '.join(parts)}" if parts else "No pending data to sync"
