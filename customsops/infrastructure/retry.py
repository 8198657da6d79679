"""
Retry helper with exponential backoff and jitter for upstream HTTP calls.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from customsops.observability.telemetry import counter, log_event

T = TypeVar("T")


class UpstreamError(RuntimeError):
    """An Azure Function App / Logic App call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class RetryPolicy:
    stage: str
    max_attempts: int = 2
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.1
    sleep_fn: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        # At least one call is always made.
        self.max_attempts = max(1, self.max_attempts)

    def execute(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Call ``func`` until it succeeds or attempts run out.

        Only ``UpstreamError`` is retried; a status of 429 or 5xx (or no status,
        meaning a network failure) is retryable, any other status re-raises
        at once.
        """
        attempt = 0
        last_error: UpstreamError | None = None

        while attempt < self.max_attempts:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except UpstreamError as exc:
                log_event(
                    "stage_error",
                    stage=self.stage,
                    error=str(exc),
                    status=exc.status_code,
                    attempt=attempt,
                )
                if not self._should_retry(exc):
                    raise
                last_error = exc

            if attempt >= self.max_attempts:
                break

            self._backoff(attempt)

        assert last_error is not None
        raise last_error

    def _should_retry(self, exc: UpstreamError) -> bool:
        status = exc.status_code
        if status is None:
            return True
        return bool(status == 429 or 500 <= status < 600)

    def _backoff(self, attempt: int) -> None:
        counter("retry_count")
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        delay += random.uniform(0, self.jitter)
        log_event("retry_scheduled", stage=self.stage, attempt=attempt, delay=round(delay, 3))
        if self.sleep_fn is not None:
            self.sleep_fn(delay)
