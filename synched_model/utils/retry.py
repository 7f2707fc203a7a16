"""Retry utilities with exponential backoff."""

import asyncio
from typing import Any, Awaitable, Callable

import structlog
from pydantic import BaseModel, Field, model_validator

log = structlog.stdlib.get_logger()


class RetryExhaustedError(Exception):
    """Raised when every attempt of a retried operation has failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class BackoffPolicy(BaseModel):
    """Exponential backoff schedule between retry attempts."""

    base_delay: float = Field(default=0.05, gt=0.0, description="Delay after the first failure")
    factor: float = Field(default=1.5, gt=1.0, description="Growth factor between delays")
    max_delay: float | None = Field(
        default=None, description="Optional cap on a single delay in seconds"
    )

    @model_validator(mode="after")
    def _check_max_delay(self) -> "BackoffPolicy":
        if self.max_delay is not None and self.max_delay < self.base_delay:
            raise ValueError("max_delay must be greater than or equal to base_delay")
        return self

    def delay(self, attempt: int) -> float:
        """
        Get the delay to wait after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (self.factor ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


async def retry_with_backoff(
    operation: Callable[[], Awaitable[Any]],
    max_attempts: int = 20,
    policy: BackoffPolicy | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    on_attempt_failed: Callable[[int, Exception, float], None] | None = None,
) -> Any:
    """
    Await an operation until it succeeds or the attempt budget runs out.

    Args:
        operation: Zero-argument coroutine function to retry
        max_attempts: Maximum number of attempts, including the first one
        policy: Backoff schedule (defaults to BackoffPolicy())
        sleep: Coroutine function used to wait between attempts
        on_attempt_failed: Optional callback receiving (attempt, error, delay)
            for every failed attempt that will be retried

    Returns:
        Result of the first successful attempt

    Raises:
        RetryExhaustedError: If all attempts failed
        ValueError: If max_attempts is less than 1
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    policy = policy or BackoffPolicy()
    operation_name = getattr(operation, "__qualname__", repr(operation))

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt == max_attempts:
                log.error(
                    "max_attempts_reached",
                    function=operation_name,
                    max_attempts=max_attempts,
                    error=str(e),
                )
                raise RetryExhaustedError(attempt, e) from e

            delay = policy.delay(attempt)

            log.warning(
                "retrying_after_error",
                function=operation_name,
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=delay,
                error=str(e),
            )

            if on_attempt_failed is not None:
                on_attempt_failed(attempt, e, delay)

            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise AssertionError("retry loop exited without a result")
