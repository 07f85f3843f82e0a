"""Retry logic with exponential backoff for Notion API rate limits.

Notion answers 429 with a Retry-After header when an integration exceeds
its average request rate. This module retries such calls up to 3 times with
exponential backoff (1s, 2s, 4s) and fails fast for every other error.
"""

import time
import logging
from typing import Callable, TypeVar

from .errors import APIAccessError

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 3


def retry_on_rate_limit(func: Callable[..., T], *args, **kwargs) -> T:
    """Retry function on 429 rate limit with exponential backoff.

    Args:
        func: The function to execute with retry logic
        *args: Positional arguments to pass to the function
        **kwargs: Keyword arguments to pass to the function

    Returns:
        The return value of the function

    Raises:
        APIAccessError: If rate limit persists after 3 retries
        Other exceptions: Passed through immediately without retry

    Example:
        >>> result = retry_on_rate_limit(client.get_page, "59833787-2cf9-4fdf-8782-e53db20768a5")
    """
    for retry_num in range(MAX_RETRIES + 1):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not _is_rate_limit_error(e):
                raise

            if retry_num >= MAX_RETRIES:
                logger.error(
                    f"Rate limit persisted after {MAX_RETRIES} retries, giving up"
                )
                raise APIAccessError(status_code=429)

            wait_time = 2 ** retry_num
            logger.info(
                f"Rate limit hit, retrying in {wait_time}s "
                f"(retry {retry_num + 1}/{MAX_RETRIES})"
            )
            time.sleep(wait_time)

    raise APIAccessError(status_code=429)


def _is_rate_limit_error(exception: Exception) -> bool:
    """Check if an exception represents a rate limit (429) error.

    Args:
        exception: The exception to check

    Returns:
        True if this appears to be a rate limit error, False otherwise
    """
    if getattr(exception, 'status_code', None) == 429:
        return True

    response = getattr(exception, 'response', None)
    if response is not None and getattr(response, 'status_code', None) == 429:
        return True

    # Notion's error code for throttling
    error_msg = str(exception).lower()
    rate_limit_patterns = [
        '429',
        'rate_limited',
        'too many requests',
        'rate limit exceeded',
    ]
    return any(pattern in error_msg for pattern in rate_limit_patterns)
