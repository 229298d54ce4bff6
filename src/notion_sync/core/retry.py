"""Retry with exponential backoff."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retry(
    call: Callable[[], T],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    is_retryable: Callable[[BaseException], bool] = lambda exc: True,
    delay_hint: Callable[[BaseException], float | None] | None = None,
    sleep: Callable[[float], None] | None = None,
) -> T:
    """
    Run *call*, retrying retryable failures with exponential backoff.

    The n-th retry waits ``base_delay * 2**n`` seconds (capped at
    *max_delay*) unless *delay_hint* returns a server-provided delay for
    the failure.  Failures that are not retryable propagate at once; the
    last retryable failure propagates once *max_retries* retries are used.

    Args:
        call: Zero-argument callable to run.
        max_retries: Retries after the first attempt.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound for computed delays.
        is_retryable: Predicate selecting the failures worth retrying.
        delay_hint: Optional extractor of a delay (seconds) from a failure.
        sleep: Sleep function; defaults to ``time.sleep``.

    Returns:
        Whatever *call* returns.
    """
    attempt = 0
    while True:
        try:
            return call()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            if attempt >= max_retries:
                logger.error(
                    "Giving up after %d retries: %s", max_retries, exc
                )
                raise

            hinted = delay_hint(exc) if delay_hint is not None else None
            delay = (
                hinted
                if hinted is not None
                else min(base_delay * (2**attempt), max_delay)
            )
            attempt += 1
            logger.warning(
                "Retrying in %.2fs (attempt %d/%d): %s",
                delay,
                attempt,
                max_retries,
                exc,
            )
            (sleep or time.sleep)(delay)
