"""Retry helper for oracle transport calls. The ledger core itself never retries."""

from __future__ import annotations

import logging
import time
from typing import Callable, Tuple, Type, TypeVar


T = TypeVar("T")

logger = logging.getLogger("okr_ledger.retry")


class RetryError(Exception):
    """Raised when every attempt of a transport call has failed."""

    def __init__(self, label: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"{label}: gave up after {attempts} attempts ({last_error})")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


def retry(
    func: Callable[[], T],
    retries: int,
    backoff: float,
    exceptions: Tuple[Type[BaseException], ...],
    label: str = "call",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run func, allowing `retries` extra attempts on the listed exceptions.

    The delay starts at `backoff` and doubles after each failure. Each failed
    attempt is logged with `label` (e.g. "relayer submit request_id=3").
    """
    delay = backoff
    for attempt in range(1, retries + 2):
        try:
            return func()
        except exceptions as exc:
            if attempt > retries:
                logger.error("%s failed on final attempt %d: %s", label, attempt, exc)
                raise RetryError(label, attempt, exc) from exc
            logger.warning("%s failed on attempt %d/%d: %s; retrying in %.3fs", label, attempt, retries + 1, exc, delay)
            sleep(delay)
            delay *= 2
    raise AssertionError("unreachable")
