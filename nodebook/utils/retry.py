"""Exponential backoff retry for async operations."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Substrings that mark an error as transient. Matched against the lowercased
# error message; the LLM gateway raises errors carrying these markers.
RETRYABLE_MARKERS: Tuple[str, ...] = (
    "network",
    "timeout",
    "econnreset",
    "etimedout",
    "connection reset",
    "500",
    "502",
    "503",
    "504",
)


def default_is_retryable(error: BaseException) -> bool:
    """Decide whether an error looks transient.

    Args:
        error: Error raised by the wrapped operation

    Returns:
        bool: True for network, timeout and 5xx style failures
    """
    message = str(error).lower()
    return any(marker in message for marker in RETRYABLE_MARKERS)


@dataclass
class RetryPolicy:
    """Configuration for retry with exponential backoff.

    Delays are in seconds.
    """
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    is_retryable: Callable[[BaseException], bool] = field(
        default=default_is_retryable, repr=False
    )


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    description: str = "operation",
) -> T:
    """Run an async operation, retrying transient failures.

    The operation is attempted at most ``max_retries + 1`` times. Between
    attempts the delay starts at ``initial_delay`` and is multiplied by
    ``backoff_factor`` after each wait, never exceeding ``max_delay``.
    When retries run out, or the error is not retryable, the last error is
    re-raised unchanged.

    Args:
        operation: Zero-argument callable returning an awaitable
        policy: Retry policy, defaults to ``RetryPolicy()``
        description: Label used in log messages

    Returns:
        The operation's result
    """
    policy = policy or RetryPolicy()
    delay = min(policy.initial_delay, policy.max_delay)

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= policy.max_retries or not policy.is_retryable(e):
                raise

            attempt += 1
            logger.warning(
                f"{description} failed ({e}); retry {attempt}/{policy.max_retries} "
                f"in {delay:.2f} seconds"
            )
            await asyncio.sleep(delay)
            delay = min(delay * policy.backoff_factor, policy.max_delay)
