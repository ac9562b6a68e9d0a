"""Polling state machine tracking one document to a terminal state.

States: uploading -> processing -> completed | error | timed_out.

Each tick fetches the raw status, normalizes it and classifies it. Transport
failures and unrecognised payloads consume an attempt exactly like a
processing tick; only an explicit completed/error status or an exhausted
attempt budget ends the machine. The interval is fixed: the server reports
monotonic progress, so there is nothing to back off from.

Callers must not run two track() calls for the same document at once; the
poller does not de-duplicate them.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from ragchat.errors import ConfigurationError, ServiceResponseError, TransientNetworkError
from ragchat.ingestion.progress import ProgressBus
from ragchat.ingestion.status import classify_status, to_document_status
from ragchat.models.documents import DocumentRecord, IngestionOutcome, PollState, ProgressEvent
from ragchat.normalize.response import ResponseNormalizer
from ragchat.tools.retry import CancelToken

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_MS = 2000

TRANSPORT_ERRORS: tuple[type[Exception], ...] = (
    TransientNetworkError,
    ServiceResponseError,
    httpx.HTTPError,
)


class StatusSource(Protocol):
    """Anything that can fetch a raw document status payload."""

    async def get_status(self, document_id: str) -> Any: ...


# No-op default; see PrometheusIngestionMetrics
class IngestionMetrics:
    """Interface for ingestion metrics."""

    def inc_poll(self, outcome: str) -> None:
        """Count one poll tick."""
        pass

    def inc_outcome(self, status: str) -> None:
        """Count one terminal outcome."""
        pass


class IngestionPoller:
    """Drive documents from upload to a terminal state by interval polling."""

    def __init__(
        self,
        source: StatusSource,
        *,
        bus: ProgressBus | None = None,
        normalizer: ResponseNormalizer | None = None,
        metrics: IngestionMetrics | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        """Initialize poller.

        Args:
            source: Status fetcher (usually DocumentServiceClient)
            bus: Progress bus to publish to (a private one is created if omitted)
            normalizer: Response normalizer (default instance if omitted)
            metrics: Metrics recorder (optional, defaults to no-op)
            sleep_fn: Injectable sleep function taking seconds (default: asyncio.sleep)
            max_attempts: Default attempt budget per track() call
            interval_ms: Default delay between attempts
        """
        self._source = source
        self.bus = bus or ProgressBus()
        self._normalizer = normalizer or ResponseNormalizer()
        self._metrics = metrics or IngestionMetrics()
        self._sleep = sleep_fn or asyncio.sleep
        self._max_attempts = max_attempts
        self._interval_ms = interval_ms

    async def track(
        self,
        document_id: str,
        *,
        max_attempts: int | None = None,
        interval_ms: int | None = None,
        cancel_token: CancelToken | None = None,
    ) -> IngestionOutcome:
        """Poll until the document completes, fails, or the budget runs out.

        Args:
            document_id: Document to track
            max_attempts: Status fetches allowed (default from constructor)
            interval_ms: Delay between fetches (default from constructor)
            cancel_token: Checked before every fetch and every wait

        Returns:
            IngestionOutcome with status completed, error or timeout

        Raises:
            ConfigurationError: Missing id or non-positive budget (before any fetch)
            OperationCancelledError: Token cancelled; no terminal event is published
        """
        if not document_id or not str(document_id).strip():
            raise ConfigurationError("document_id is required to track ingestion")
        attempts_budget = self._max_attempts if max_attempts is None else max_attempts
        interval = self._interval_ms if interval_ms is None else interval_ms
        if attempts_budget < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if interval < 0:
            raise ConfigurationError("interval_ms must be non-negative")
        if cancel_token is None:
            cancel_token = CancelToken()

        progress = 0
        last_tick_failed = False

        for attempt in range(1, attempts_budget + 1):
            cancel_token.throw_if_cancelled()

            try:
                raw = await self._source.get_status(document_id)
            except TRANSPORT_ERRORS as e:
                last_tick_failed = True
                self._metrics.inc_poll("transport_error")
                logger.warning(
                    f"Status poll failed for {document_id}",
                    extra={
                        "structured": {
                            "document_id": document_id,
                            "attempt": attempt,
                            "error_reason": type(e).__name__,
                        }
                    },
                )
            else:
                last_tick_failed = False
                raw_status = self._normalizer.extract_or(raw, "status")
                state = classify_status(raw_status)
                reported = self._normalizer.progress(raw)

                if state is PollState.completed:
                    self._metrics.inc_poll("completed")
                    record = self._record(raw, document_id, state, 100)
                    return self._finish(
                        IngestionOutcome(
                            success=True,
                            status="completed",
                            document_id=document_id,
                            document=record,
                            progress=100,
                            attempts=attempt,
                        ),
                        raw_status,
                    )

                if state is PollState.error:
                    self._metrics.inc_poll("error")
                    message = self._normalizer.error_message(raw)
                    final_progress = reported if reported is not None else progress
                    record = self._record(raw, document_id, state, final_progress, error=message)
                    return self._finish(
                        IngestionOutcome(
                            success=False,
                            status="error",
                            document_id=document_id,
                            document=record,
                            progress=final_progress,
                            error=message,
                            attempts=attempt,
                        ),
                        raw_status,
                    )

                if raw_status is None:
                    logger.debug(f"Status payload for {document_id} has no status; still processing")
                self._metrics.inc_poll("processing")
                if reported is not None:
                    progress = reported
                self.bus.publish(
                    ProgressEvent(
                        document_id=document_id,
                        progress=progress,
                        status=state,
                        raw_status=raw_status,
                        attempt=attempt,
                    )
                )

            if attempt < attempts_budget:
                cancel_token.throw_if_cancelled()
                await self._sleep(interval / 1000)

        return self._finish(
            IngestionOutcome(
                success=False,
                status="timeout",
                document_id=document_id,
                progress=0 if last_tick_failed else progress,
                error="timeout",
                attempts=attempts_budget,
            ),
            None,
        )

    def _record(
        self,
        raw: Any,
        document_id: str,
        state: PollState,
        progress: int,
        error: str | None = None,
    ) -> DocumentRecord:
        record = self._normalizer.document(raw, document_id) or DocumentRecord(document_id=document_id)
        update: dict[str, Any] = {"status": to_document_status(state), "progress": progress}
        if error is not None:
            update["error"] = error
        return record.model_copy(update=update)

    def _finish(self, outcome: IngestionOutcome, raw_status: str | None) -> IngestionOutcome:
        state = {
            "completed": PollState.completed,
            "error": PollState.error,
            "timeout": PollState.timed_out,
        }[outcome.status]
        self.bus.publish(
            ProgressEvent(
                document_id=outcome.document_id,
                progress=outcome.progress,
                status=state,
                raw_status=raw_status,
                attempt=outcome.attempts,
            )
        )
        self._metrics.inc_outcome(outcome.status)
        log_data = {
            "document_id": outcome.document_id,
            "outcome": outcome.status,
            "attempts": outcome.attempts,
            "progress": outcome.progress,
        }
        if outcome.success:
            logger.info(f"Ingestion finished: {outcome.document_id} - completed", extra={"structured": log_data})
        else:
            log_data["error_reason"] = outcome.error
            logger.warning(
                f"Ingestion finished: {outcome.document_id} - {outcome.status}",
                extra={"structured": log_data},
            )
        return outcome
