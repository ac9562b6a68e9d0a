"""Bounded retry with exponential backoff.

Delays grow as ``base_delay_ms * 2**attempt`` (attempt counted from 0), so
the default budget of two retries waits 1s then 2s. After
``max_retries + 1`` attempts the last error is re-raised unchanged.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from ragchat.errors import ConfigurationError, OperationCancelledError

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]


@dataclass
class CancelToken:
    """Token for cancellation signaling."""

    cancelled: bool = False

    def cancel(self) -> None:
        """Request cancellation; checked at the next suspension point."""
        self.cancelled = True

    def throw_if_cancelled(self) -> None:
        """Raise OperationCancelledError if cancelled."""
        if self.cancelled:
            raise OperationCancelledError("operation cancelled")


# No-op default; see PrometheusRetryMetrics
class RetryMetrics:
    """Interface for retry metrics."""

    def record_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record attempt latency."""
        pass

    def inc_attempt(self, operation: str, outcome: str) -> None:
        """Increment attempt counter."""
        pass


# No-op default; see StructuredRetryLogger
class RetryLogger:
    """Interface for structured logging."""

    def log_attempt(
        self,
        operation: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
        next_delay_ms: float | None = None,
    ) -> None:
        """Log one attempt."""
        pass


class RetryExecutor:
    """Generic async retry wrapper with no operation-specific knowledge."""

    def __init__(
        self,
        metrics: RetryMetrics | None = None,
        logger: RetryLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function taking seconds (default: asyncio.sleep)
        """
        self._metrics = metrics or RetryMetrics()
        self._logger = logger or RetryLogger()
        self._sleep = sleep_fn or asyncio.sleep

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_retries: int = 2,
        base_delay_ms: float = 1000,
        retry_on: RetryPredicate | None = None,
        cancel_token: CancelToken | None = None,
        name: str = "operation",
    ) -> T:
        """Run ``operation`` until it succeeds or the budget is spent.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            max_retries: Retries after the first attempt
            base_delay_ms: Delay before the first retry; doubles each retry
            retry_on: Predicate deciding whether an error is worth retrying
                (default: every Exception)
            cancel_token: Checked before each attempt and before each wait
            name: Operation label for logs and metrics

        Returns:
            The operation's result

        Raises:
            ConfigurationError: Negative budget or delay
            OperationCancelledError: Token cancelled between attempts
            Exception: The last error raised by ``operation``
        """
        if max_retries < 0 or base_delay_ms < 0:
            raise ConfigurationError("max_retries and base_delay_ms must be non-negative")
        if cancel_token is None:
            cancel_token = CancelToken()

        attempt = 0
        while True:
            cancel_token.throw_if_cancelled()
            attempt_start = time.monotonic()
            try:
                result = await operation()
            except OperationCancelledError:
                raise
            except Exception as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                retryable = retry_on is None or retry_on(e)
                exhausted = attempt >= max_retries

                if not retryable or exhausted:
                    outcome = "fatal" if not retryable else "exhausted"
                    self._metrics.inc_attempt(name, outcome)
                    self._metrics.record_latency(name, outcome, elapsed_ms)
                    self._logger.log_attempt(
                        name, attempt + 1, outcome, elapsed_ms, error_reason=type(e).__name__
                    )
                    raise

                delay_ms = base_delay_ms * 2**attempt
                self._metrics.inc_attempt(name, "retry")
                self._metrics.record_latency(name, "retry", elapsed_ms)
                self._logger.log_attempt(
                    name,
                    attempt + 1,
                    "retry",
                    elapsed_ms,
                    error_reason=type(e).__name__,
                    next_delay_ms=delay_ms,
                )
                cancel_token.throw_if_cancelled()
                await self._sleep(delay_ms / 1000)
                attempt += 1
                continue

            elapsed_ms = (time.monotonic() - attempt_start) * 1000
            self._metrics.inc_attempt(name, "success")
            self._metrics.record_latency(name, "success", elapsed_ms)
            self._logger.log_attempt(name, attempt + 1, "success", elapsed_ms)
            return result
