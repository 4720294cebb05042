"""Fixed-backoff retry policy."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

import requests

from apic_rulesets.errors import OperationFailedError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry a callable up to *max_attempts* times with a fixed *delay* between attempts.

    Only exceptions listed in *retry_on* are retried; anything else
    propagates immediately.  *sleep* is injectable so tests never wait.
    """

    max_attempts: int = 3
    delay: float = 10.0
    retry_on: tuple[type[BaseException], ...] = (
        requests.RequestException,
        OperationFailedError,
    )
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def backoff(self, attempt: int) -> float:
        """Delay to wait after failed *attempt* (1-based)."""
        return self.delay

    def run(self, func: Callable[[], T], description: str = "operation") -> tuple[T, int]:
        """Call *func* until it succeeds; return ``(result, attempts_used)``.

        Raises :class:`RetryExhaustedError` after the last failed attempt.
        """
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = func()
            except self.retry_on as exc:
                last_error = exc
                if attempt == self.max_attempts:
                    break
                wait = self.backoff(attempt)
                logger.warning(
                    "%s failed, retrying in %ss (attempt %s/%s): %s",
                    description,
                    wait,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                self.sleep(wait)
                continue
            if attempt > 1:
                logger.info("%s succeeded on attempt %s", description, attempt)
            return result, attempt

        assert last_error is not None
        raise RetryExhaustedError(
            f"{description} failed after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
            last_error=last_error,
        ) from last_error
