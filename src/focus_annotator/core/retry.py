"""Bounded exponential backoff around a single outbound call."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

import requests
from loguru import logger

from focus_annotator.errors import AnnotatorServiceError, ModelTransientError

T = TypeVar("T")

TRANSIENT_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


def is_transient_error(exc: BaseException) -> bool:
    """Timeouts, dropped connections, rate limits and 5xx are worth retrying."""
    if isinstance(exc, (requests.Timeout, requests.ConnectionError, ModelTransientError)):
        return True
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return exc.response.status_code in TRANSIENT_STATUSES
    if isinstance(exc, AnnotatorServiceError):
        return exc.status is None or exc.status in TRANSIENT_STATUSES
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry one call."""

    max_attempts: int = 3
    base_delay: float = 0.5
    factor: float = 1.8
    max_delay: float = 5.0
    is_transient: Callable[[BaseException], bool] = field(default=is_transient_error)

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        return min(self.base_delay * self.factor ** (attempt - 1), self.max_delay)


NO_RETRY = RetryPolicy(max_attempts=1)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "call",
) -> T:
    """Call ``fn`` until it succeeds, fails permanently, or attempts run out.

    Non-transient errors propagate immediately; the last transient error
    propagates once ``policy.max_attempts`` is reached.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except Exception as e:
            if not policy.is_transient(e) or attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "{} failed (attempt {}/{}): {}; retrying in {:.1f}s",
                description,
                attempt,
                policy.max_attempts,
                e,
                delay,
            )
            sleep(delay)
