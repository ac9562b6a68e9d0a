"""Status synonym sets and classification.

The backend reports status strings in English and Portuguese with
inconsistent casing, so classification is case-insensitive and anything
unrecognised counts as still processing.
"""

from typing import Any

from ragchat.models.documents import DocumentStatus, PollState

COMPLETED_STATUSES = frozenset(
    {
        "completed",
        "complete",
        "success",
        "finalizado",
        "concluído",
        "concluido",
        "disponível",
        "disponivel",
        "available",
    }
)

ERROR_STATUSES = frozenset({"error", "failed", "erro", "falha", "falhou", "unavailable"})

UPLOADING_STATUSES = frozenset({"uploading", "enviando"})

PROCESSING_STATUSES = frozenset(
    {"processing", "processando", "em processamento", "pending", "analyzing"}
)


def normalize_status(raw: Any) -> str | None:
    """Lower-case, trimmed status string, or None for non-strings/blank."""
    if not isinstance(raw, str):
        return None
    value = raw.strip().casefold()
    return value or None


def is_completed(raw: Any) -> bool:
    return normalize_status(raw) in COMPLETED_STATUSES


def is_error(raw: Any) -> bool:
    return normalize_status(raw) in ERROR_STATUSES


def classify_status(raw: Any) -> PollState:
    """Map a raw backend status onto a machine state.

    Args:
        raw: Status value as received (may be None or not a string)

    Returns:
        completed / error for known synonyms, uploading for upload
        synonyms, processing for everything else
    """
    value = normalize_status(raw)
    if value in COMPLETED_STATUSES:
        return PollState.completed
    if value in ERROR_STATUSES:
        return PollState.error
    if value in UPLOADING_STATUSES:
        return PollState.uploading
    return PollState.processing


def to_document_status(state: PollState) -> DocumentStatus:
    """Project a machine state onto the backend-facing status.

    timed_out has no backend counterpart; the document is still processing
    as far as the server knows.
    """
    if state is PollState.timed_out:
        return DocumentStatus.processing
    return DocumentStatus(state.value)


UPLOADING_MESSAGES = (
    "Enviando seu documento para análise...",
    "Transferindo os dados com segurança...",
    "Preparando o arquivo para processamento...",
    "Quase lá! Finalizando o upload...",
)

PROCESSING_MESSAGES = (
    "Analisando a estrutura do documento...",
    "Identificando informações importantes...",
    "Processando o conteúdo com IA...",
    "Extraindo dados para você consultar depois...",
)

ANALYZING_MESSAGES = (
    "Descobrindo padrões interessantes...",
    "Organizando as informações para você...",
    "Conectando os pontos importantes...",
    "Preparando dados para visualização...",
)

FINALIZING_MESSAGES = (
    "Quase pronto! Finalizando a análise...",
    "Polindo os resultados para você...",
    "Otimizando para consultas rápidas...",
    "Apenas mais alguns instantes...",
)


def _pick(messages: tuple[str, ...], offset: int, step: int) -> str:
    return messages[min(max(offset, 0) // step, len(messages) - 1)]


def processing_message(state: PollState, progress: int) -> str:
    """Friendly status line for a progress indicator."""
    if state is PollState.uploading:
        return _pick(UPLOADING_MESSAGES, progress, 25)
    if state is PollState.processing:
        if progress < 40:
            return _pick(PROCESSING_MESSAGES, progress, 10)
        if progress < 70:
            return _pick(ANALYZING_MESSAGES, progress - 40, 10)
        return _pick(FINALIZING_MESSAGES, progress - 70, 10)
    if state is PollState.error:
        return "Ocorreu um erro no processamento. Tente novamente."
    if state is PollState.completed:
        return "Documento processado com sucesso!"
    if state is PollState.timed_out:
        return "O processamento está demorando mais que o esperado. Verifique novamente mais tarde."
    return "Processando documento..."
