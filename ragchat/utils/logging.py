"""Structured logging for retried operations."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredRetryLogger:
    """Structured logger for retry attempts."""

    def log_attempt(
        self,
        operation: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
        next_delay_ms: float | None = None,
    ) -> None:
        """Log retry attempt with structured data."""
        log_data: dict[str, Any] = {
            "operation": operation,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason
        if next_delay_ms is not None:
            log_data["next_delay_ms"] = next_delay_ms

        log_msg = f"Retry attempt: {operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
