"""Context assembly: retrieved fragments to a grounded prompt context.

The rendered context is a banner, one delimited block per fragment and a
fixed instruction footer. The footer is what constrains the downstream
model to the supplied material, so it is always present when a context is
produced.
"""

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from ragchat.errors import ConfigurationError
from ragchat.models.context import AssembledContext, ContextFragment, SourceReference
from ragchat.normalize.response import ResponseNormalizer
from ragchat.tools.retry import CancelToken, RetryExecutor, RetryPredicate

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNKS = 10

CONTEXT_BANNER = "\n\n### CONTEXTO DE DOCUMENTOS ###\n\n"

GROUNDING_FOOTER = (
    "\n### INSTRUÇÕES PARA USO DO CONTEXTO ###\n"
    "1. Use APENAS as informações fornecidas acima para responder à pergunta do usuário.\n"
    "2. Se as informações necessárias não estiverem presentes no contexto, responda que não "
    "pode encontrar essa informação nos documentos fornecidos.\n"
    "3. NÃO invente informações ou use conhecimento externo ao contexto fornecido.\n"
    "4. Quando utilizar informações do contexto, cite de qual documento a informação foi obtida.\n"
    "5. Se um trecho parecer incompleto ou estranho, indique isso na sua resposta.\n"
    "6. Para cada afirmação específica sobre dados ou fatos, indique de qual documento ela foi "
    "extraída.\n"
    "7. Responda em português de forma clara e objetiva.\n"
)

UNKNOWN_FILE_TYPE = "DESCONHECIDO"


class SearchSource(Protocol):
    """Anything that can run a relevance search over conversation documents."""

    async def search(self, query: str, conversation_id: str, limit: int) -> Any: ...


def render_fragment(source: SourceReference) -> str:
    """Render one fragment block.

    Args:
        source: Fragment with its 1-based index

    Returns:
        Block text ending in a blank line
    """
    file_type = (source.file_type or UNKNOWN_FILE_TYPE).upper()
    block = f"---- [{source.index}] Documento: {source.filename} ({file_type}) ----\n\n"
    block += f"{source.text}\n\n"
    if source.page:
        block += f"Fonte: Página {source.page}\n"
    if source.section:
        block += f"Seção: {source.section}\n"
    return block + "\n"


def render_context(sources: Sequence[SourceReference]) -> str:
    """Banner, one block per source, then the grounding footer."""
    return CONTEXT_BANNER + "".join(render_fragment(s) for s in sources) + GROUNDING_FOOTER


class ContextAssembler:
    """Turn a query and an active document set into an AssembledContext.

    Every call performs a fresh retrieval; nothing is cached between calls.
    """

    def __init__(
        self,
        source: SearchSource,
        *,
        retry: RetryExecutor | None = None,
        normalizer: ResponseNormalizer | None = None,
        max_chunks: int = DEFAULT_MAX_CHUNKS,
        max_context_chars: int | None = None,
        max_retries: int = 2,
        base_delay_ms: float = 1000,
        retry_on: RetryPredicate | None = None,
    ) -> None:
        """Initialize assembler.

        Args:
            source: Retrieval backend (usually DocumentServiceClient)
            retry: Retry executor for the search call
            normalizer: Response normalizer for search envelopes
            max_chunks: Fragments requested per query
            max_context_chars: Upper bound on context_text length (None = unbounded)
            max_retries: Search retries after the first attempt
            base_delay_ms: First retry delay
            retry_on: Which search errors are retried (default: all)
        """
        if max_chunks < 1:
            raise ConfigurationError("max_chunks must be at least 1")
        self._source = source
        self._retry = retry or RetryExecutor()
        self._normalizer = normalizer or ResponseNormalizer()
        self._max_chunks = max_chunks
        self._max_context_chars = max_context_chars
        self._max_retries = max_retries
        self._base_delay_ms = base_delay_ms
        self._retry_on = retry_on

    async def retrieve(
        self,
        query: str,
        conversation_id: str,
        limit: int | None = None,
        cancel_token: CancelToken | None = None,
    ) -> list[ContextFragment]:
        """Fetch fragments in server relevance order (no client re-sort).

        Raises:
            Exception: Whatever the search raised on its last attempt
        """
        limit = limit or self._max_chunks
        raw = await self._retry.with_retry(
            lambda: self._source.search(query, conversation_id, limit),
            max_retries=self._max_retries,
            base_delay_ms=self._base_delay_ms,
            retry_on=self._retry_on,
            cancel_token=cancel_token,
            name="context_search",
        )
        results = self._normalizer.results(raw)[:limit]
        return [ContextFragment.from_search_result(r, i) for i, r in enumerate(results, start=1)]

    async def assemble(
        self,
        query: str,
        conversation_id: str | None,
        active_documents: Sequence[Any],
        cancel_token: CancelToken | None = None,
    ) -> AssembledContext | None:
        """Build the grounded context for one user message.

        Args:
            query: User message text
            conversation_id: Conversation whose documents are searched
            active_documents: Documents currently enabled for the conversation
            cancel_token: Forwarded to the retry executor

        Returns:
            AssembledContext, or None when there are no active documents or
            the search found nothing that fits

        Raises:
            ConfigurationError: Missing query or conversation id
            Exception: Search failure after the retry budget
        """
        if not active_documents:
            return None
        if not query or not query.strip():
            raise ConfigurationError("query is required to assemble context")
        if not conversation_id:
            raise ConfigurationError("conversation_id is required to assemble context")

        fragments = await self.retrieve(query, conversation_id, cancel_token=cancel_token)

        sources: list[SourceReference] = []
        used = len(CONTEXT_BANNER) + len(GROUNDING_FOOTER)
        for fragment in fragments:
            candidate = SourceReference(**fragment.model_dump(), index=len(sources) + 1)
            block_len = len(render_fragment(candidate))
            if self._max_context_chars is not None and used + block_len > self._max_context_chars:
                logger.info(
                    f"Context budget reached after {len(sources)} fragments",
                    extra={
                        "structured": {
                            "conversation_id": conversation_id,
                            "kept": len(sources),
                            "dropped": len(fragments) - len(sources),
                            "max_context_chars": self._max_context_chars,
                        }
                    },
                )
                break
            sources.append(candidate)
            used += block_len

        if not sources:
            logger.info(f"No context fragments for conversation {conversation_id}")
            return None

        return AssembledContext(context_text=render_context(sources), sources=sources)


def rag_feedback(context: AssembledContext | None, max_named: int = 3) -> str:
    """One-line note on which documents grounded an answer ('' when none)."""
    if context is None or not context.sources:
        return ""
    documents = context.documents
    count = len(documents)
    noun = "documento" if count == 1 else "documentos"
    if count <= max_named:
        names = ", ".join(doc.filename for doc in documents)
        return f"A resposta foi baseada em {count} {noun}: {names}."
    return f"A resposta foi baseada em {count} {noun}."
