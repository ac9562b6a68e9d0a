"""Document Service client: upload, status, association, search, health."""

import logging
from typing import IO, Any

import httpx

from ragchat.adapters.http import (
    BackendClient,
    is_network_error,
    is_network_or_pool_error,
    is_pool_error,
)
from ragchat.config import Settings, get_settings
from ragchat.errors import (
    ConfigurationError,
    ProcessorUnavailableError,
    RagChatError,
    ServiceResponseError,
)
from ragchat.ingestion.status import classify_status, to_document_status
from ragchat.models.documents import DocumentRecord, DocumentsSummary, HealthStatus, UploadReceipt
from ragchat.normalize.response import ResponseNormalizer, unwrap_data
from ragchat.tools.retry import RetryExecutor

logger = logging.getLogger(__name__)

RECOVERED_UPLOAD_MESSAGE = "Documento enviado, mas pode não estar associado à conversa corretamente"


def _require(value: str | None, name: str) -> str:
    if not value or not str(value).strip():
        raise ConfigurationError(f"{name} is required")
    return str(value)


class DocumentServiceClient:
    """Async client for the ``/documents`` endpoints.

    Status and association calls are retried here; search is retried by
    the ContextAssembler that owns the retrieval budget.
    """

    def __init__(
        self,
        backend: BackendClient,
        *,
        retry: RetryExecutor | None = None,
        normalizer: ResponseNormalizer | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._backend = backend
        self._retry = retry or RetryExecutor()
        self._normalizer = normalizer or ResponseNormalizer()
        self._settings = settings or get_settings()

    async def health(self) -> HealthStatus:
        """Ask whether the document processor is up. Never raises."""
        try:
            raw = await self._backend.get("documents/processor-health")
        except (RagChatError, httpx.HTTPError) as e:
            logger.warning(f"Processor health check failed: {type(e).__name__}")
            message = str(e) or "Serviço de processamento indisponível"
            return HealthStatus(available=False, message=message)
        return self._normalizer.health(raw)

    async def upload(
        self,
        file: bytes | IO[bytes],
        filename: str,
        conversation_id: str | None = None,
        *,
        content_type: str | None = None,
        check_health: bool = True,
    ) -> UploadReceipt:
        """Upload a file, optionally attaching it to a conversation.

        When the backend fails with its connection-pool error but the error
        body still carries a document id, the upload did happen: the
        document is associated manually and a ``pending`` receipt returned.

        Args:
            file: File content or binary file object
            filename: Original filename
            conversation_id: Conversation to attach the document to
            content_type: MIME type (default application/octet-stream)
            check_health: Refuse to upload when the processor is down

        Returns:
            UploadReceipt

        Raises:
            ConfigurationError: Missing filename
            ProcessorUnavailableError: Health check reported the processor down
            MalformedResponseError: Upload response carries no document id
            TransientNetworkError, ServiceResponseError: After the retry budget
        """
        _require(filename, "filename")
        content = file if isinstance(file, bytes) else file.read()

        if check_health:
            health = await self.health()
            if not health.available:
                raise ProcessorUnavailableError(
                    "O serviço de processamento de documentos não está disponível no momento. "
                    "Tente novamente mais tarde."
                )

        async def attempt() -> UploadReceipt:
            try:
                raw = await self._backend.post(
                    "documents/upload",
                    files={"file": (filename, content, content_type or "application/octet-stream")},
                    data={"conversationId": conversation_id} if conversation_id else None,
                    timeout_s=self._settings.upload_timeout_s,
                )
            except ServiceResponseError as e:
                receipt = await self._recover_upload(e, filename, conversation_id)
                if receipt is None:
                    raise
                return receipt
            return UploadReceipt(
                document_id=self._normalizer.document_id(raw),
                filename=filename,
                status=self._normalizer.extract_or(raw, "status", "uploaded"),
                message=self._normalizer.extract_or(raw, "error_message"),
            )

        return await self._retry.with_retry(
            attempt,
            max_retries=self._settings.upload_max_retries,
            base_delay_ms=self._settings.retry_base_delay_ms,
            retry_on=is_network_or_pool_error,
            name="document_upload",
        )

    async def _recover_upload(
        self,
        error: ServiceResponseError,
        filename: str,
        conversation_id: str | None,
    ) -> UploadReceipt | None:
        if not is_pool_error(error):
            return None
        document_id = self._normalizer.extract_or(error.payload, "document_id")
        if document_id is None:
            return None

        logger.warning(
            f"Upload hit the connection-pool error; recovered document {document_id}",
            extra={"structured": {"document_id": document_id, "conversation_id": conversation_id}},
        )
        if conversation_id:
            try:
                await self.associate(str(document_id), conversation_id)
            except RagChatError as e:
                # The file is stored; a missing association is reported in the receipt
                logger.warning(f"Manual association failed for {document_id}: {type(e).__name__}")
        return UploadReceipt(
            document_id=str(document_id),
            filename=filename,
            status="pending",
            message=RECOVERED_UPLOAD_MESSAGE,
            recovered=True,
        )

    async def get_status(self, document_id: str) -> Any:
        """Raw status payload; network errors retried once after 500 ms.

        A 2xx body reporting ``status: "error"`` describes a failed document,
        not a failed call, so it is returned for the caller to classify.
        """
        _require(document_id, "document_id")

        async def fetch() -> Any:
            try:
                return await self._backend.get(f"documents/{document_id}/status")
            except ServiceResponseError as e:
                if e.status_code is not None and 200 <= e.status_code < 300:
                    return e.payload
                raise

        return await self._retry.with_retry(
            fetch,
            max_retries=self._settings.status_retry_max_retries,
            base_delay_ms=self._settings.status_retry_base_delay_ms,
            retry_on=is_network_error,
            name="document_status",
        )

    async def get_record(self, document_id: str) -> DocumentRecord:
        """Current status as a DocumentRecord."""
        raw = await self.get_status(document_id)
        return self._normalizer.document(raw, document_id) or DocumentRecord(document_id=document_id)

    async def associate(self, document_id: str, conversation_id: str) -> Any:
        """Attach a document to a conversation."""
        _require(document_id, "document_id")
        _require(conversation_id, "conversation_id")
        return await self._retry.with_retry(
            lambda: self._backend.post(
                f"documents/{document_id}/associate", json={"conversationId": conversation_id}
            ),
            max_retries=self._settings.associate_max_retries,
            base_delay_ms=self._settings.retry_base_delay_ms,
            retry_on=is_network_or_pool_error,
            name="document_associate",
        )

    async def search(self, query: str, conversation_id: str, limit: int = 10) -> Any:
        """Raw relevance search results for a conversation's documents."""
        _require(query, "query")
        _require(conversation_id, "conversation_id")
        return await self._backend.get(
            "documents/search",
            params={"query": query, "conversationId": conversation_id, "limit": limit},
        )

    async def list_documents(self, conversation_id: str | None = None) -> list[DocumentRecord]:
        raw = await self._backend.get("documents", params={"conversationId": conversation_id})
        records = []
        for item in self._normalizer.documents(raw):
            state = classify_status(item.get("status"))
            records.append(DocumentRecord.from_payload(item, status=to_document_status(state)))
        return records

    async def get_content(self, document_id: str) -> Any:
        """Extracted document content (text, or whatever the backend returns)."""
        _require(document_id, "document_id")
        body = unwrap_data(await self._backend.get(f"documents/{document_id}/content"))
        if isinstance(body, dict) and "content" in body:
            return body["content"]
        return body

    async def delete(self, document_id: str) -> None:
        _require(document_id, "document_id")
        await self._backend.delete(f"documents/{document_id}")

    async def summarize(self, conversation_id: str) -> DocumentsSummary:
        """Ready / processing / error counts for a conversation."""
        _require(conversation_id, "conversation_id")
        body = unwrap_data(
            await self._backend.get("documents/status", params={"conversationId": conversation_id})
        )
        if not isinstance(body, dict):
            return DocumentsSummary()

        def count(*keys: str) -> int:
            for key in keys:
                value = body.get(key)
                if isinstance(value, int) and not isinstance(value, bool):
                    return value
            return 0

        ready = count("ready")
        processing = count("processing")
        error = count("error", "failed")
        has_documents = body.get("hasDocuments", body.get("has_documents"))
        return DocumentsSummary(
            has_documents=bool(has_documents) if has_documents is not None else (ready + processing + error) > 0,
            ready=ready,
            processing=processing,
            error=error,
        )
