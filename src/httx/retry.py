"""Retry as a policy wrapped around single-attempt execution."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Optional

from httx.errors import NetworkError, RequestTimeoutError
from httx.result import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """When and how long to wait before trying a request again.

    ``attempts`` counts every try, the first one included. Network errors are
    retried; timeouts only with ``retry_on_timeout``; responses only when their
    status is in ``retry_statuses``. Subclass and override ``should_retry`` for
    anything else.
    """

    attempts: int = 3
    backoff_factor: float = 0.5
    max_delay: float = 30.0
    retry_on_timeout: bool = False
    retry_statuses: FrozenSet[int] = field(default_factory=lambda: frozenset({502, 503, 504}))

    def should_retry(self, outcome: Outcome, attempt: int) -> bool:
        if attempt >= self.attempts:
            return False
        if outcome.is_ok():
            return outcome.value.status in self.retry_statuses
        error = outcome.error
        if isinstance(error, RequestTimeoutError):
            return self.retry_on_timeout
        return isinstance(error, NetworkError)

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.max_delay, self.backoff_factor * (2 ** (attempt - 1)))


async def execute_with_retry(
    attempt_fn: Callable[[], Awaitable[Outcome]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[Outcome, int, float], None]] = None,
) -> Outcome:
    """Call ``attempt_fn`` until it succeeds or ``policy`` says stop. Returns the last outcome."""
    attempt = 1
    while True:
        outcome = await attempt_fn()
        if not policy.should_retry(outcome, attempt):
            return outcome
        wait = policy.delay(attempt)
        if on_retry is not None:
            on_retry(outcome, attempt, wait)
        else:
            logger.warning(f"Attempt {attempt} of {policy.attempts} failed, retrying in {wait}s")
        await sleep(wait)
        attempt += 1
