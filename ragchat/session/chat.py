"""Chat session orchestration.

Wires upload -> ingestion polling -> context assembly -> message send ->
response mining for one conversation. Every collaborator is injected; the
send-message capability in particular is passed in rather than looked up,
so UI code and tests can provide their own.
"""

import logging
from datetime import UTC, datetime
from typing import IO, Protocol

import httpx

from ragchat.adapters.conversations import ConversationServiceClient
from ragchat.adapters.documents import DocumentServiceClient
from ragchat.adapters.http import BackendClient
from ragchat.config import Settings, get_settings
from ragchat.errors import (
    ConfigurationError,
    MalformedResponseError,
    OperationCancelledError,
    RagChatError,
)
from ragchat.ingestion.poller import IngestionPoller
from ragchat.ingestion.progress import ProgressBus
from ragchat.mining.miner import ResponseMiner
from ragchat.models.chat import ChatMessage, ChatTurn, Conversation, SentMessage
from ragchat.models.context import AssembledContext
from ragchat.models.documents import DocumentRecord, IngestionOutcome
from ragchat.normalize.response import ResponseNormalizer
from ragchat.rag.context import ContextAssembler
from ragchat.tools.retry import CancelToken, RetryExecutor
from ragchat.utils.logging import StructuredRetryLogger
from ragchat.utils.metrics import (
    PrometheusIngestionMetrics,
    PrometheusMiningMetrics,
    PrometheusRetryMetrics,
)

logger = logging.getLogger(__name__)

FALLBACK_ASSISTANT_REPLY = "Não foi possível processar a resposta do assistente."


class MessageSender(Protocol):
    """Capability to deliver a user message and return the reply."""

    async def send_message(
        self, conversation_id: str, content: str, context: str | None = None
    ) -> SentMessage: ...


class ConversationStarter(Protocol):
    """Capability to open a new conversation."""

    async def create(self, title: str | None = None) -> Conversation: ...


class ChatSession:
    """State for one conversation: its id and the active document set.

    Not safe for concurrent uploads of the same document; callers
    de-duplicate, as with IngestionPoller.track.
    """

    def __init__(
        self,
        sender: MessageSender,
        documents: DocumentServiceClient,
        *,
        conversations: ConversationStarter | None = None,
        conversation_id: str | None = None,
        bus: ProgressBus | None = None,
        poller: IngestionPoller | None = None,
        assembler: ContextAssembler | None = None,
        miner: ResponseMiner | None = None,
    ) -> None:
        self._sender = sender
        self._documents = documents
        self._conversations = conversations
        self._conversation_id = conversation_id
        self.bus = bus or (poller.bus if poller else ProgressBus())
        self._poller = poller or IngestionPoller(documents, bus=self.bus)
        self._assembler = assembler or ContextAssembler(documents)
        self._miner = miner or ResponseMiner()
        self._active: list[str] = []
        self.records: dict[str, DocumentRecord] = {}

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    @property
    def active_documents(self) -> list[str]:
        return list(self._active)

    def activate(self, document_id: str) -> None:
        if document_id not in self._active:
            self._active.append(document_id)

    def deactivate(self, document_id: str) -> None:
        if document_id in self._active:
            self._active.remove(document_id)

    async def ensure_conversation(self, title: str | None = None) -> str:
        """Return the conversation id, creating the conversation on first use.

        Raises:
            ConfigurationError: No conversation id and no way to create one
        """
        if self._conversation_id:
            return self._conversation_id
        if self._conversations is None:
            raise ConfigurationError("no conversation_id and no conversation service to create one")
        conversation = await self._conversations.create(title)
        self._conversation_id = conversation.conversation_id
        return self._conversation_id

    async def upload_document(
        self,
        file: bytes | IO[bytes],
        filename: str,
        *,
        activate: bool = True,
        cancel_token: CancelToken | None = None,
    ) -> IngestionOutcome:
        """Upload a document and track it until it is usable.

        Progress goes to ``self.bus``. A completed document is added to the
        active set unless ``activate`` is False.

        Raises:
            ProcessorUnavailableError: Processor health check failed
            OperationCancelledError: Polling cancelled
        """
        conversation_id = await self.ensure_conversation()
        receipt = await self._documents.upload(file, filename, conversation_id)
        outcome = await self._poller.track(receipt.document_id, cancel_token=cancel_token)
        if outcome.document is not None:
            self.records[receipt.document_id] = outcome.document
        if outcome.success and activate:
            self.activate(receipt.document_id)
        return outcome

    async def build_context(
        self,
        content: str,
        cancel_token: CancelToken | None = None,
    ) -> tuple[AssembledContext | None, str | None]:
        """Assemble context, treating retrieval failure as "no context"."""
        conversation_id = await self.ensure_conversation()
        try:
            context = await self._assembler.assemble(
                content, conversation_id, self._active, cancel_token=cancel_token
            )
        except OperationCancelledError:
            raise
        except (RagChatError, httpx.HTTPError) as e:
            logger.warning(
                f"Context retrieval failed; sending without context: {type(e).__name__}",
                extra={"structured": {"conversation_id": conversation_id, "error_reason": str(e)}},
            )
            return None, str(e) or type(e).__name__
        return context, None

    async def send(self, content: str, *, cancel_token: CancelToken | None = None) -> ChatTurn:
        """Send a user message with document context and mine the reply.

        Raises:
            ConfigurationError: Empty message
        """
        if not content or not content.strip():
            raise ConfigurationError("message content is empty")
        conversation_id = await self.ensure_conversation()
        context, context_error = await self.build_context(content, cancel_token)

        now = datetime.now(UTC).isoformat()
        try:
            sent = await self._sender.send_message(
                conversation_id, content, context.context_text if context else None
            )
        except MalformedResponseError:
            logger.warning(f"Reply for conversation {conversation_id} had no assistant message")
            sent = SentMessage()

        user_message = sent.user_message or ChatMessage(
            conversation_id=conversation_id, role="user", content=content, created_at=now
        )
        assistant_message = sent.assistant_message or ChatMessage(
            conversation_id=conversation_id,
            role="assistant",
            content=FALLBACK_ASSISTANT_REPLY,
            created_at=now,
        )
        return ChatTurn(
            user_message=user_message,
            assistant_message=assistant_message,
            context=context,
            context_error=context_error,
            mined=self._miner.mine(assistant_message.content),
        )


def build_session(
    settings: Settings | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    conversation_id: str | None = None,
) -> ChatSession:
    """Wire a ChatSession against the configured backend.

    Uses Prometheus metrics and structured logging throughout.

    Args:
        settings: Settings (default: get_settings())
        client: Optional httpx client (for testing with mocks)
        conversation_id: Resume an existing conversation
    """
    settings = settings or get_settings()
    backend = BackendClient(settings=settings, client=client)
    retry = RetryExecutor(metrics=PrometheusRetryMetrics(), logger=StructuredRetryLogger())
    normalizer = ResponseNormalizer()
    documents = DocumentServiceClient(backend, retry=retry, normalizer=normalizer, settings=settings)
    conversations = ConversationServiceClient(backend, normalizer=normalizer, settings=settings)
    bus = ProgressBus()
    return ChatSession(
        conversations,
        documents,
        conversations=conversations,
        conversation_id=conversation_id,
        bus=bus,
        poller=IngestionPoller(
            documents,
            bus=bus,
            normalizer=normalizer,
            metrics=PrometheusIngestionMetrics(),
            max_attempts=settings.poll_max_attempts,
            interval_ms=settings.poll_interval_ms,
        ),
        assembler=ContextAssembler(
            documents,
            retry=retry,
            normalizer=normalizer,
            max_chunks=settings.rag_max_chunks,
            max_context_chars=settings.rag_max_context_chars,
            max_retries=settings.retry_max_retries,
            base_delay_ms=settings.retry_base_delay_ms,
        ),
        miner=ResponseMiner(metrics=PrometheusMiningMetrics()),
    )
