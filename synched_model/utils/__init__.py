"""Shared utilities for configuration, logging, and error handling"""

from synched_model.utils.retry import BackoffPolicy, RetryExhaustedError, retry_with_backoff

__all__ = ["BackoffPolicy", "RetryExhaustedError", "retry_with_backoff"]
