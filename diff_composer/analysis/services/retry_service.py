"""Retry with exponential backoff for model API calls."""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from diff_composer.config import ComposerConfig
from diff_composer.errors import ApiRetryExhaustedError, RetryableApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_ms(config: ComposerConfig, attempt: int) -> int:
    """Delay before the retry following ``attempt`` (1-based)."""
    return config.initial_backoff_ms * (2 ** (attempt - 1))


def retry_api_call(
    config: ComposerConfig,
    call: Callable[[], T],
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``call`` until it succeeds, retrying transient failures.

    Only RetryableApiError is retried, at most ``config.max_retries`` attempts
    in total, sleeping ``initial_backoff_ms * 2**(attempt-1)`` between them.
    Any other exception propagates on the first occurrence.

    Args:
        config: Retry count and initial backoff
        call: Zero-argument callable performing one API request
        sleep: Sleep function taking seconds

    Returns:
        The value returned by ``call``

    Raises:
        ApiRetryExhaustedError: If the last allowed attempt also failed transiently
    """
    attempts = max(config.max_retries, 1)
    attempt = 0
    while True:
        attempt += 1
        try:
            return call()
        except RetryableApiError as e:
            if attempt >= attempts:
                raise ApiRetryExhaustedError(config.max_retries, e) from e
            delay = backoff_ms(config, attempt)
            logger.warning(
                "Error: %s - Retry %d/%d after %dms...", e, attempt, config.max_retries, delay
            )
            sleep(delay / 1000)
