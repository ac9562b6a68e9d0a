"""Models package - re-exports for convenience."""

from ragchat.models.chat import ChatMessage, ChatTurn, Conversation, SentMessage
from ragchat.models.context import AssembledContext, ContextFragment, SourceReference
from ragchat.models.documents import (
    DocumentRecord,
    DocumentsSummary,
    DocumentStatus,
    HealthStatus,
    IngestionOutcome,
    PollState,
    ProgressEvent,
    UploadReceipt,
)
from ragchat.models.mining import (
    ChartSpec,
    DocumentCitation,
    MinedResponse,
    VisualizationPayload,
)

__all__ = [
    # Documents
    "DocumentRecord",
    "DocumentStatus",
    "DocumentsSummary",
    "HealthStatus",
    "IngestionOutcome",
    "PollState",
    "ProgressEvent",
    "UploadReceipt",
    # Context
    "AssembledContext",
    "ContextFragment",
    "SourceReference",
    # Mining
    "ChartSpec",
    "DocumentCitation",
    "MinedResponse",
    "VisualizationPayload",
    # Chat
    "ChatMessage",
    "ChatTurn",
    "Conversation",
    "SentMessage",
]
