"""Shared request execution for Google API clients: 429 backoff and error mapping."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any

from googleapiclient.errors import HttpError

from gmail_notion_sync.core.exceptions import RateLimitError, UpstreamError

logger = logging.getLogger(__name__)


def is_rate_limit_error(exc: Exception) -> bool:
    """Check whether an exception represents a Google API 429 rate limit."""
    if isinstance(exc, HttpError) and exc.status_code == 429:
        return True
    error_str = str(exc)
    return "429" in error_str or "rateLimitExceeded" in error_str


def is_not_found_error(exc: BaseException | None) -> bool:
    """Check whether an exception is a Google API 404."""
    return isinstance(exc, HttpError) and exc.status_code == 404


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff settings for rate-limited requests."""

    max_retries: int = 5
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 60.0
    num_retries: int = 3


def execute_with_retry(request: Any, context: str, policy: RetryPolicy) -> Any:
    """Execute a single API request with exponential backoff on 429 errors.

    Args:
        request: A googleapiclient HttpRequest object.
        context: Description for log messages (e.g. "list labels").
        policy: Retry/backoff settings.

    Returns:
        The API response dict.

    Raises:
        RateLimitError: When retries are exhausted on 429 errors.
        UpstreamError: On non-rate-limit API errors. 404s keep the original
            HttpError as ``__cause__`` so callers can map them to "not found".
    """
    backoff = policy.initial_backoff_seconds

    for attempt in range(policy.max_retries + 1):
        try:
            return request.execute(num_retries=policy.num_retries)
        except Exception as e:
            if not is_rate_limit_error(e):
                raise UpstreamError(f"Failed to {context}: {e}") from e
            if attempt >= policy.max_retries:
                raise RateLimitError(
                    f"Rate limited during {context} after {policy.max_retries} retries: {e}"
                ) from e
            sleep_time = min(backoff, policy.max_backoff_seconds)
            jitter = random.uniform(0, sleep_time)
            logger.warning(
                "Rate limited during %s (attempt %d/%d), "
                "sleeping %.2fs (backoff=%.2f + jitter=%.2f)",
                context, attempt + 1, policy.max_retries,
                jitter, backoff, jitter,
            )
            time.sleep(jitter)
            backoff = min(backoff * 2, policy.max_backoff_seconds)

    raise RateLimitError(f"Rate limited during {context} after {policy.max_retries} retries")
