"""Document lifecycle models: records, ingestion outcomes and progress events."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ragchat.errors import IngestionTimeoutError, TerminalProcessingError


class DocumentStatus(str, Enum):
    """Backend-facing document status."""

    uploading = "uploading"
    processing = "processing"
    completed = "completed"
    error = "error"

    @property
    def terminal(self) -> bool:
        return self in (DocumentStatus.completed, DocumentStatus.error)


class PollState(str, Enum):
    """Ingestion state machine states."""

    uploading = "uploading"
    processing = "processing"
    completed = "completed"
    error = "error"
    timed_out = "timed_out"

    @property
    def terminal(self) -> bool:
        return self in (PollState.completed, PollState.error, PollState.timed_out)


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


class DocumentRecord(BaseModel):
    """Client-side projection of a backend document.

    Frozen: the poller produces updated copies with model_copy(update=...).
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    filename: str = ""
    file_type: str = ""
    size_bytes: int = Field(default=0, ge=0)
    status: DocumentStatus = DocumentStatus.processing
    progress: int = Field(default=0, ge=0, le=100)
    error: str | None = None

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        *,
        document_id: str | None = None,
        status: DocumentStatus | None = None,
        progress: int | None = None,
    ) -> "DocumentRecord":
        """Build a record from a backend document object.

        Accepts both snake_case and camelCase keys. Explicit keyword values
        win over whatever the payload carries.

        Args:
            payload: Raw document object (already unwrapped from envelopes)
            document_id: Override for the document id
            status: Already-classified status
            progress: Already-normalized progress percentage

        Returns:
            DocumentRecord
        """
        doc_id = document_id or _first(payload, "document_id", "documentId", "id") or ""
        size = _first(payload, "file_size", "size_bytes", "size")
        if progress is None:
            raw_progress = _first(payload, "processing_progress", "progress")
            progress = int(raw_progress) if isinstance(raw_progress, int | float) else 0
        error = _first(payload, "processing_error", "error_message")
        return cls(
            document_id=str(doc_id),
            filename=str(_first(payload, "original_filename", "filename", "name") or ""),
            file_type=str(_first(payload, "file_type", "fileType", "mime_type") or ""),
            size_bytes=int(size) if isinstance(size, int | float) and size >= 0 else 0,
            status=status or DocumentStatus.processing,
            progress=max(0, min(100, progress)),
            error=str(error) if error is not None else None,
        )


class IngestionOutcome(BaseModel):
    """Terminal result of one IngestionPoller.track call."""

    success: bool
    status: Literal["completed", "error", "timeout"]
    document_id: str
    document: DocumentRecord | None = None
    progress: int = Field(default=0, ge=0, le=100)
    error: str | None = None
    attempts: int = Field(default=0, ge=0)

    @property
    def timed_out(self) -> bool:
        return self.status == "timeout"

    def raise_for_status(self) -> "IngestionOutcome":
        """Raise the matching error for a failed outcome, else return self.

        Raises:
            TerminalProcessingError: Backend reported a processing failure
            IngestionTimeoutError: Attempt budget exhausted
        """
        if self.status == "error":
            raise TerminalProcessingError(self.document_id, self.error or "processing failed")
        if self.status == "timeout":
            raise IngestionTimeoutError(self.document_id, self.attempts)
        return self


class ProgressEvent(BaseModel):
    """Progress notification published on every poll tick."""

    document_id: str
    progress: int = Field(ge=0, le=100)
    status: PollState
    raw_status: str | None = None
    attempt: int = Field(default=0, ge=0)

    @property
    def terminal(self) -> bool:
        return self.status.terminal


class UploadReceipt(BaseModel):
    """Acknowledgement returned by the upload endpoint."""

    document_id: str
    filename: str
    status: str = "uploaded"
    message: str | None = None
    # True when the id was recovered from a pool-error response
    recovered: bool = False


class HealthStatus(BaseModel):
    """Document processor availability."""

    available: bool
    message: str = ""


class DocumentsSummary(BaseModel):
    """Per-conversation document counts."""

    has_documents: bool = False
    ready: int = 0
    processing: int = 0
    error: int = 0
