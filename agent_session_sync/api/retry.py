"""Retry policy for backend API calls.

Delays come from an explicit table rather than a multiplier: attempt N
waits ``retry_delays[N]`` and anything past the end of the table waits
the last entry. Statuses in ``non_retryable_statuses`` fail immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from ..exceptions import ApiRequestError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_DELAYS = (1.0, 2.0, 5.0)  # seconds
DEFAULT_NON_RETRYABLE_STATUSES = frozenset({400, 401, 403})


@dataclass
class RetryPolicy:
    """Configuration for retries with a fixed delay table."""

    max_attempts: int = 3
    retry_delays: tuple[float, ...] = DEFAULT_RETRY_DELAYS
    non_retryable_statuses: frozenset[int] = DEFAULT_NON_RETRYABLE_STATUSES

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds after the given zero-based failed attempt."""
        if not self.retry_delays:
            return 0.0
        index = min(max(attempt, 0), len(self.retry_delays) - 1)
        return self.retry_delays[index]

    def is_retryable(self, error: ApiRequestError) -> bool:
        if not error.retryable:
            return False
        return error.status_code not in self.non_retryable_statuses


async def retry_with_policy(
    fn: Callable[..., Coroutine[Any, Any, T]],
    *args: Any,
    policy: RetryPolicy | None = None,
    context_msg: str = "",
    **kwargs: Any,
) -> T:
    """Execute an async function, retrying ApiRequestError per the policy.

    Args:
        fn: Async callable to execute
        *args: Positional args for fn
        policy: Retry policy (uses defaults if None)
        context_msg: Extra context for log messages (e.g. request path)
        **kwargs: Keyword args for fn

    Returns:
        Result of fn

    Raises:
        ApiRequestError: Last error once attempts are exhausted or the
            error is not retryable
    """
    cfg = policy or RetryPolicy()
    ctx = f" [{context_msg}]" if context_msg else ""
    attempts = max(cfg.max_attempts, 1)

    for attempt in range(attempts):
        try:
            result = await fn(*args, **kwargs)
        except ApiRequestError as exc:
            retryable = cfg.is_retryable(exc)
            if not retryable or attempt >= attempts - 1:
                logger.error(
                    "RETRY_EXHAUSTED: attempt=%d/%d status=%s retryable=%s%s: %s",
                    attempt + 1,
                    attempts,
                    exc.status_code,
                    retryable,
                    ctx,
                    exc.message,
                )
                raise

            delay = cfg.delay_for(attempt)
            logger.warning(
                "RETRYING: attempt=%d/%d status=%s delay=%.1fs%s: %s",
                attempt + 1,
                attempts,
                exc.status_code,
                delay,
                ctx,
                exc.message,
            )
            await asyncio.sleep(delay)
        else:
            if attempt > 0:
                logger.info(
                    "RETRY_RECOVERED: succeeded on attempt %d/%d%s",
                    attempt + 1,
                    attempts,
                    ctx,
                )
            return result

    raise RuntimeError("retry_with_policy exhausted without raising")  # pragma: no cover
