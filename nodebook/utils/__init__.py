"""Utility modules for nodebook."""
from .retry import RetryPolicy, default_is_retryable, retry

__all__ = ["RetryPolicy", "default_is_retryable", "retry"]
