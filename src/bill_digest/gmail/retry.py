"""Tenacity retry policy for transient Gmail API failures."""

from __future__ import annotations

import logging
import socket
from typing import Callable, TypeVar

from googleapiclient.errors import HttpError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def is_transient(exc: BaseException) -> bool:
    """Rate limits, server errors and network hiccups are worth another try."""
    if isinstance(exc, HttpError):
        return getattr(exc.resp, "status", None) in RETRYABLE_STATUS
    return isinstance(exc, (socket.timeout, TimeoutError, ConnectionError))


def with_retry(
    *,
    max_attempts: int = 3,
    initial_wait_seconds: float = 1.0,
    max_wait_seconds: float = 10.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Return a tenacity retry decorator for Gmail calls.

    Usage::

        @with_retry()
        def fetch(message_id: str) -> dict: ...
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_wait_seconds, max=max_wait_seconds),
        retry=retry_if_exception(is_transient),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def call_with_retry(fn: Callable[..., T], *args, **kwargs) -> T:
    """Invoke fn once under the default retry policy."""
    return with_retry()(fn)(*args, **kwargs)
