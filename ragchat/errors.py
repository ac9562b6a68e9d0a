"""Error taxonomy shared by every layer of the client.

Transport problems are absorbed and retried at the lowest layer that can
(poller tick, RetryExecutor). Only terminal conditions reach the caller.
"""

from typing import Any


class RagChatError(Exception):
    """Base class for all client errors."""

    pass


class MalformedResponseError(RagChatError):
    """No known envelope shape yielded the requested field."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"response has no recognizable '{field}'")


class TransientNetworkError(RagChatError):
    """Connection, pool or timeout failure talking to the backend."""

    pass


class ServiceResponseError(RagChatError):
    """Backend answered with an HTTP error or an error envelope."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: str | None = None,
        payload: Any = None,
    ) -> None:
        self.status_code = status_code
        self.details = details
        self.payload = payload
        super().__init__(message)


class TerminalProcessingError(RagChatError):
    """Backend reported that processing a document failed."""

    def __init__(self, document_id: str, message: str) -> None:
        self.document_id = document_id
        super().__init__(message)


class IngestionTimeoutError(RagChatError):
    """Polling budget ran out before the document reached a terminal status.

    Unlike TerminalProcessingError the document may still finish later.
    """

    def __init__(self, document_id: str, attempts: int) -> None:
        self.document_id = document_id
        self.attempts = attempts
        super().__init__(f"document {document_id} still processing after {attempts} attempts")


class ConfigurationError(RagChatError, ValueError):
    """Required id or parameter missing; raised before any network call."""

    pass


class OperationCancelledError(RagChatError):
    """Operation was cancelled through its CancelToken."""

    pass


class ProcessorUnavailableError(RagChatError):
    """Document processor health check reported the service as down."""

    pass
