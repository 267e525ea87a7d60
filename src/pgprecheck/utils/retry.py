"""Retry policy for transient failures, mostly connection setup."""

from collections.abc import Callable
from typing import Any, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from pgprecheck.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _log_before_sleep(operation: str, max_attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None or not retry_state.outcome.failed:
            return
        error = retry_state.outcome.exception()
        wait = retry_state.next_action.sleep if retry_state.next_action else None
        logger.warning(
            "retrying_after_transient_error",
            operation=operation,
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            wait_seconds=wait,
            error_type=type(error).__name__,
            error=str(error),
        )

    return before_sleep


def retry_on_exception(
    exceptions: tuple[type[Exception], ...] = (Exception,),
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    max_delay: float | None = None,
    operation: str = "call",
) -> Callable[[F], F]:
    """Retry a function or coroutine function on the given exception types.

    The last exception is re-raised once attempts (or the optional overall
    delay budget) run out.

    Args:
        exceptions: Exception types worth another attempt
        max_attempts: Maximum number of attempts, including the first
        min_wait: Minimum backoff between attempts (seconds)
        max_wait: Maximum backoff between attempts (seconds)
        max_delay: Give up once this many seconds have passed since the first attempt
        operation: Name logged with each retry

    Returns:
        Decorator applying the retry policy
    """
    stop = stop_after_attempt(max_attempts)
    if max_delay is not None:
        stop = stop | stop_after_delay(max_delay)

    return retry(
        retry=retry_if_exception_type(exceptions),
        stop=stop,
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        before_sleep=_log_before_sleep(operation, max_attempts),
        reraise=True,
    )
