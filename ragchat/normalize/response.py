"""Response normalization across the backend's envelope shapes.

The same logical resource arrives flat, wrapped once in ``{"data": ...}``,
wrapped twice, or nested under a ``document`` key. Each field has an ordered
list of extraction strategies; every strategy is a pure function
``raw -> value | None`` and the first non-None result wins. New shapes are
supported by adding a strategy here, never at call sites.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from ragchat.errors import MalformedResponseError
from ragchat.ingestion.status import classify_status, to_document_status
from ragchat.models.chat import ChatMessage, Conversation, SentMessage
from ragchat.models.documents import DocumentRecord, HealthStatus

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Erro ao processar documento"

# Envelope-level status values that describe the HTTP exchange, not the resource
ENVELOPE_MARKERS = frozenset({"success", "ok"})

MAX_SEARCH_DEPTH = 6

Strategy = Callable[[Any], Any | None]
Validator = Callable[[Any], bool]


@dataclass(frozen=True)
class Extraction:
    """Result of probing a payload for one field."""

    found: bool
    value: Any = None
    path: str | None = None


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _is_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return _is_text(value) or isinstance(value, int)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int | float):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def _is_list(value: Any) -> bool:
    return isinstance(value, list)


def _is_envelope(node: Any) -> bool:
    return isinstance(node, dict) and isinstance(node.get("data"), dict | list)


def _is_success_envelope(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    status = node.get("status")
    return node.get("success") is True or (
        isinstance(status, str) and status.strip().casefold() in ENVELOPE_MARKERS
    )


def _looks_like_document(value: Any) -> bool:
    return isinstance(value, dict) and any(
        key in value for key in ("document_id", "documentId", "original_filename")
    )


def _looks_like_conversation(value: Any) -> bool:
    return isinstance(value, dict) and _is_id(value.get("conversation_id"))


def _looks_like_sent_message(value: Any) -> bool:
    return isinstance(value, dict) and (
        isinstance(value.get("assistantMessage"), dict)
        or isinstance(value.get("assistant_message"), dict)
    )


@dataclass(frozen=True)
class PathStrategy:
    """Follow a fixed key path and accept the value if it validates.

    With ``skip_envelope_markers`` a value found beside an envelope ``data``
    key is ignored when it is an envelope marker such as ``"success"``.
    With ``skip_success_envelopes`` a value whose parent is a success
    envelope is ignored, so the envelope's own message never stands in for
    a document failure reason.
    """

    path: tuple[str | int, ...]
    accept: Validator
    skip_envelope_markers: bool = False
    skip_success_envelopes: bool = False

    @property
    def name(self) -> str:
        return ".".join(str(p) for p in self.path) or "<root>"

    def __call__(self, raw: Any) -> Any | None:
        parent = None
        node = raw
        for key in self.path:
            parent = node
            if isinstance(key, int):
                if not isinstance(node, list) or len(node) <= key:
                    return None
                node = node[key]
            elif isinstance(node, dict):
                node = node.get(key)
            else:
                return None
        if not self.accept(node):
            return None
        if (
            self.skip_envelope_markers
            and _is_envelope(parent)
            and isinstance(node, str)
            and node.strip().casefold() in ENVELOPE_MARKERS
        ):
            return None
        if self.skip_success_envelopes and _is_success_envelope(parent):
            return None
        return node


@dataclass(frozen=True)
class RecursiveKeyStrategy:
    """Depth-first search for the first of ``keys`` holding a valid value."""

    keys: tuple[str, ...]
    accept: Validator
    skip_envelope_markers: bool = False

    @property
    def name(self) -> str:
        return f"**.{'|'.join(self.keys)}"

    def __call__(self, raw: Any) -> Any | None:
        return self._search(raw, 0)

    def _search(self, node: Any, depth: int) -> Any | None:
        if depth > MAX_SEARCH_DEPTH:
            return None
        if isinstance(node, dict):
            for key in self.keys:
                value = node.get(key)
                if value is None or not self.accept(value):
                    continue
                if (
                    self.skip_envelope_markers
                    and _is_envelope(node)
                    and value.strip().casefold() in ENVELOPE_MARKERS
                ):
                    continue
                return value
            children: Sequence[Any] = list(node.values())
        elif isinstance(node, list):
            children = node
        else:
            return None
        for child in children:
            if isinstance(child, dict | list):
                found = self._search(child, depth + 1)
                if found is not None:
                    return found
        return None


def _paths(accept: Validator, *paths: tuple[str | int, ...], markers: bool = False) -> list[Strategy]:
    return [PathStrategy(path, accept, skip_envelope_markers=markers) for path in paths]


def _collection(key: str) -> list[Strategy]:
    return _paths(
        _is_list,
        (),
        (key,),
        ("data",),
        ("data", key),
        ("data", "data"),
        ("data", "data", key),
    )


FIELD_STRATEGIES: dict[str, list[Strategy]] = {
    "document_id": _paths(
        _is_id,
        ("documentId",),
        ("document_id",),
        ("data", "documentId"),
        ("data", "document_id"),
        ("data", "data", "documentId"),
        ("data", "data", "document_id"),
        ("document", "document_id"),
        ("data", "document", "document_id"),
    )
    + [RecursiveKeyStrategy(("documentId", "document_id", "id"), _is_text)],
    "status": _paths(
        _is_text,
        ("status",),
        ("data", "status"),
        ("data", "data", "status"),
        ("document", "status"),
        ("data", "document", "status"),
        ("data", "data", "document", "status"),
        markers=True,
    )
    + [RecursiveKeyStrategy(("status",), _is_text, skip_envelope_markers=True)],
    "progress": _paths(
        _is_number,
        ("progress",),
        ("processing_progress",),
        ("data", "processing_progress"),
        ("data", "progress"),
        ("data", "data", "processing_progress"),
        ("data", "data", "progress"),
        ("document", "processing_progress"),
        ("document", "progress"),
        ("data", "document", "processing_progress"),
        ("data", "document", "progress"),
    ),
    "document": _paths(
        _looks_like_document,
        ("document",),
        ("data", "document"),
        ("data", "data", "document"),
        ("data", "data"),
        ("data",),
        (),
    ),
    "documents": _collection("documents"),
    "results": _paths(
        _is_list,
        ("results",),
        ("data", "results"),
        ("data", "data", "results"),
        ("data",),
        (),
    ),
    "conversation": _paths(
        _looks_like_conversation,
        ("data", "data", "conversation"),
        ("data", "conversation"),
        ("conversation",),
        ("data", "data"),
        ("data",),
        (),
        ("rows", 0),
        ("data", "rows", 0),
    ),
    "conversations": _collection("conversations"),
    "messages": _collection("messages"),
    "sent_message": _paths(_looks_like_sent_message, (), ("data",), ("data", "data")),
    "error_message": _paths(
        _is_text,
        ("data", "processing_error"),
        ("processing_error",),
        ("document", "processing_error"),
        ("data", "document", "processing_error"),
        ("data", "data", "processing_error"),
        ("error",),
        ("data", "error"),
    )
    + [
        PathStrategy(("message",), _is_text, skip_success_envelopes=True),
        PathStrategy(("data", "message"), _is_text, skip_success_envelopes=True),
    ],
}


class ResponseNormalizer:
    """Probe heterogeneous backend payloads for canonical fields.

    Pure: no I/O, no mutation of the payload.
    """

    def __init__(self, strategies: dict[str, list[Strategy]] | None = None) -> None:
        self._strategies = strategies or FIELD_STRATEGIES

    def probe(self, raw: Any, field: str) -> Extraction:
        """Try each strategy for ``field`` in order.

        Args:
            raw: Arbitrary decoded JSON
            field: Canonical field name (a key of FIELD_STRATEGIES)

        Returns:
            Extraction with found=False when no strategy matched

        Raises:
            KeyError: Unknown field name
        """
        for strategy in self._strategies[field]:
            value = strategy(raw)
            if value is not None:
                return Extraction(found=True, value=value, path=getattr(strategy, "name", None))
        return Extraction(found=False)

    def extract(self, raw: Any, field: str) -> Any:
        """Like probe() but raise when nothing matched.

        Raises:
            MalformedResponseError: No strategy yielded the field
        """
        result = self.probe(raw, field)
        if not result.found:
            raise MalformedResponseError(field)
        return result.value

    def extract_or(self, raw: Any, field: str, default: Any = None) -> Any:
        """Like probe() but treat a miss as ``default`` (logged)."""
        result = self.probe(raw, field)
        if not result.found:
            logger.debug("Response has no %s; using default", field)
            return default
        return result.value

    # Typed accessors

    def document_id(self, raw: Any) -> str:
        return str(self.extract(raw, "document_id"))

    def status(self, raw: Any) -> str:
        return str(self.extract(raw, "status"))

    def progress(self, raw: Any) -> int | None:
        """Progress clamped to 0..100, or None when absent."""
        value = self.extract_or(raw, "progress")
        if value is None:
            return None
        return max(0, min(100, round(float(value))))

    def error_message(self, raw: Any, default: str = DEFAULT_ERROR_MESSAGE) -> str:
        return str(self.extract_or(raw, "error_message", default))

    def document(self, raw: Any, document_id: str | None = None) -> DocumentRecord | None:
        """Build a DocumentRecord from a status or document response.

        Status and progress come from their dedicated field strategies so that
        envelope markers never leak into the record.
        """
        payload = self.extract_or(raw, "document")
        if payload is None and document_id is None:
            return None
        doc_id = document_id or self.extract_or(raw, "document_id")
        if doc_id is None:
            return None
        raw_status = self.extract_or(raw, "status")
        return DocumentRecord.from_payload(
            payload or {},
            document_id=str(doc_id),
            status=to_document_status(classify_status(raw_status)) if raw_status else None,
            progress=self.progress(raw),
        )

    def documents(self, raw: Any) -> list[dict[str, Any]]:
        items = self.extract_or(raw, "documents", [])
        return [item for item in items if isinstance(item, dict)]

    def results(self, raw: Any) -> list[dict[str, Any]]:
        items = self.extract_or(raw, "results", [])
        return [item for item in items if isinstance(item, dict)]

    def conversation(self, raw: Any, default_title: str | None = None) -> Conversation:
        return Conversation.from_payload(self.extract(raw, "conversation"), default_title)

    def conversations(self, raw: Any) -> list[Conversation]:
        items = self.extract_or(raw, "conversations", [])
        return [Conversation.from_payload(item) for item in items if _looks_like_conversation(item)]

    def messages(self, raw: Any) -> list[ChatMessage]:
        items = self.extract_or(raw, "messages", [])
        return [ChatMessage.from_payload(item) for item in items if isinstance(item, dict)]

    def sent_message(self, raw: Any) -> SentMessage:
        container = self.extract(raw, "sent_message")
        user = container.get("userMessage") or container.get("user_message")
        assistant = container.get("assistantMessage") or container.get("assistant_message")
        return SentMessage(
            user_message=ChatMessage.from_payload(user) if isinstance(user, dict) else None,
            assistant_message=ChatMessage.from_payload(assistant),
        )

    def health(self, raw: Any) -> HealthStatus:
        return extract_health(raw)


def extract_health(raw: Any) -> HealthStatus:
    """Interpret a processor health response.

    Available when ``data.data.available`` or ``data.available`` or
    ``available`` is true, when ``status`` is ``"available"``, or when
    ``status`` is ``"success"`` and no level says ``available: false``.
    """
    if not isinstance(raw, dict):
        return HealthStatus(available=False, message="Resposta de saúde inválida")

    levels: list[dict[str, Any]] = [raw]
    inner = raw.get("data")
    if isinstance(inner, dict):
        levels.append(inner)
        innermost = inner.get("data")
        if isinstance(innermost, dict):
            levels.append(innermost)

    message = next(
        (str(level["message"]) for level in reversed(levels) if _is_text(level.get("message"))),
        "",
    )
    flags = [level["available"] for level in levels if isinstance(level.get("available"), bool)]
    if any(flags):
        return HealthStatus(available=True, message=message or "Serviço disponível")

    status = str(raw.get("status") or "").casefold()
    if status == "available" or (status == "success" and False not in flags):
        return HealthStatus(available=True, message=message or "Serviço disponível")
    return HealthStatus(available=False, message=message or "Serviço indisponível")


def unwrap_data(raw: Any, max_levels: int = 2) -> Any:
    """Peel up to ``max_levels`` ``{"data": ...}`` envelopes."""
    node = raw
    for _ in range(max_levels):
        if _is_envelope(node):
            node = node["data"]
        else:
            break
    return node


def is_success_response(raw: Any) -> bool:
    """False for error envelopes (``success: false`` or an error status)."""
    if not isinstance(raw, dict):
        return raw is not None
    if raw.get("success") is False:
        return False
    status = raw.get("status")
    if isinstance(status, str) and status.strip().casefold() in {"error", "fail", "failed"}:
        return False
    return True
