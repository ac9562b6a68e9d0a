"""Conversation Service client."""

from typing import Any

from ragchat.adapters.http import BackendClient
from ragchat.config import Settings, get_settings
from ragchat.errors import ConfigurationError, ServiceResponseError
from ragchat.models.chat import ChatMessage, Conversation, SentMessage
from ragchat.normalize.response import ResponseNormalizer


class ConversationServiceClient:
    """Async client for the ``/chat/conversations`` endpoints."""

    def __init__(
        self,
        backend: BackendClient,
        *,
        normalizer: ResponseNormalizer | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._backend = backend
        self._normalizer = normalizer or ResponseNormalizer()
        self._settings = settings or get_settings()

    async def create(self, title: str | None = None) -> Conversation:
        """Create a conversation.

        Raises:
            MalformedResponseError: Response carries no conversation id
        """
        title = title or self._settings.default_conversation_title
        raw = await self._backend.post("chat/conversations", json={"title": title})
        return self._normalizer.conversation(raw, default_title=title)

    async def send_message(
        self,
        conversation_id: str,
        content: str,
        context: str | None = None,
    ) -> SentMessage:
        """Post a user message, optionally with assembled document context.

        Args:
            conversation_id: Target conversation
            content: Message text
            context: Rendered context sent as ``document_context``

        Returns:
            SentMessage with the stored user message and the assistant reply

        Raises:
            ConfigurationError: Missing conversation id or empty content
            MalformedResponseError: No assistant message in the response
        """
        if not conversation_id:
            raise ConfigurationError("conversation_id is required to send a message")
        if not content or not content.strip():
            raise ConfigurationError("message content is empty")
        payload: dict[str, Any] = {"message": content}
        if context:
            payload["document_context"] = context
        raw = await self._backend.post(f"chat/conversations/{conversation_id}/messages", json=payload)
        return self._normalizer.sent_message(raw)

    async def list_conversations(self) -> list[Conversation]:
        raw = await self._backend.get("chat/conversations")
        return self._normalizer.conversations(raw)

    async def get_conversation(self, conversation_id: str) -> Conversation:
        if not conversation_id:
            raise ConfigurationError("conversation_id is required")
        raw = await self._backend.get(f"chat/conversations/{conversation_id}")
        return self._normalizer.conversation(raw)

    async def get_messages(self, conversation_id: str) -> list[ChatMessage]:
        if not conversation_id:
            raise ConfigurationError("conversation_id is required")
        raw = await self._backend.get(f"chat/conversations/{conversation_id}")
        return self._normalizer.messages(raw)

    async def rename(self, conversation_id: str, title: str) -> Conversation:
        if not conversation_id:
            raise ConfigurationError("conversation_id is required")
        if not title or not title.strip():
            raise ConfigurationError("title must not be empty")
        raw = await self._backend.patch(
            f"chat/conversations/{conversation_id}", json={"title": title.strip()}
        )
        found = self._normalizer.probe(raw, "conversation")
        if found.found:
            return Conversation.from_payload(found.value)
        return Conversation(conversation_id=conversation_id, title=title.strip())

    async def delete(self, conversation_id: str) -> None:
        if not conversation_id:
            raise ConfigurationError("conversation_id is required")
        await self._backend.delete(f"chat/conversations/{conversation_id}")

    async def exists(self, conversation_id: str) -> bool:
        """False when the backend answers 404 for the conversation."""
        try:
            await self._backend.get(f"chat/conversations/{conversation_id}")
        except ServiceResponseError as e:
            if e.status_code == 404:
                return False
            raise
        return True
