"""Retrieval fragments and the assembled prompt context."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


class ContextFragment(BaseModel):
    """One retrieved chunk of a document."""

    model_config = ConfigDict(frozen=True)

    document_id: str = ""
    filename: str
    file_type: str = ""
    chunk_index: int | None = None
    text: str = ""
    page: str | None = None
    section: str | None = None
    similarity_score: float | None = None

    @classmethod
    def from_search_result(cls, raw: dict[str, Any], position: int) -> "ContextFragment":
        """Build a fragment from one search hit.

        Args:
            raw: Search result object
            position: 1-based position, used for the fallback name

        Returns:
            ContextFragment
        """
        metadata = raw.get("metadata") if isinstance(raw.get("metadata"), dict) else {}
        filename = _text(raw.get("filename")) or _text(raw.get("original_filename"))
        body = _text(raw.get("chunk_text")) or _text(raw.get("text")) or _text(raw.get("content"))
        chunk_index = raw.get("chunk_index", raw.get("chunkIndex", metadata.get("chunk_index")))
        page = metadata.get("page", raw.get("page"))
        section = metadata.get("section", raw.get("section"))
        score = raw.get("similarity", raw.get("similarity_score", raw.get("score")))
        return cls(
            document_id=str(raw.get("document_id") or raw.get("documentId") or ""),
            filename=filename or f"Documento {position}",
            file_type=str(raw.get("file_type") or raw.get("fileType") or metadata.get("file_type") or ""),
            chunk_index=chunk_index if isinstance(chunk_index, int) else None,
            text=body or "",
            page=str(page) if page not in (None, "") else None,
            section=str(section) if section not in (None, "") else None,
            similarity_score=float(score) if isinstance(score, int | float) else None,
        )


class SourceReference(ContextFragment):
    """Fragment as cited in the rendered context, with its 1-based block index."""

    index: int = Field(ge=1)


class AssembledContext(BaseModel):
    """Prompt context plus the parallel source list.

    sources[i] describes the (i+1)-th block in context_text.
    """

    context_text: str
    sources: list[SourceReference]

    @property
    def documents(self) -> list[SourceReference]:
        """First source of each distinct document, in first-seen order."""
        seen: set[str] = set()
        unique: list[SourceReference] = []
        for source in self.sources:
            key = source.document_id or source.filename
            if key not in seen:
                seen.add(key)
                unique.append(source)
        return unique
