"""Conversation and message models."""

from typing import Any

from pydantic import BaseModel, Field

from ragchat.models.context import AssembledContext
from ragchat.models.mining import MinedResponse


class Conversation(BaseModel):
    """A chat conversation."""

    conversation_id: str
    title: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any], default_title: str | None = None) -> "Conversation":
        return cls(
            conversation_id=str(payload.get("conversation_id") or payload.get("conversationId") or payload.get("id")),
            title=payload.get("title") or default_title,
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
        )


class ChatMessage(BaseModel):
    """A single message in a conversation."""

    message_id: str | None = None
    conversation_id: str | None = None
    role: str
    content: str
    created_at: str | None = None
    referenced_documents: list[Any] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChatMessage":
        message_id = payload.get("message_id") or payload.get("id")
        return cls(
            message_id=str(message_id) if message_id is not None else None,
            conversation_id=payload.get("conversation_id"),
            role=payload.get("role") or "assistant",
            content=payload.get("content") or "",
            created_at=payload.get("created_at"),
            referenced_documents=payload.get("referenced_documents") or [],
        )


class SentMessage(BaseModel):
    """User message as stored plus the assistant's reply."""

    user_message: ChatMessage | None = None
    assistant_message: ChatMessage | None = None


class ChatTurn(BaseModel):
    """One user message round-trip with everything derived from it."""

    user_message: ChatMessage
    assistant_message: ChatMessage
    context: AssembledContext | None = None
    # Why no context was attached when retrieval failed
    context_error: str | None = None
    mined: MinedResponse = Field(default_factory=MinedResponse)
