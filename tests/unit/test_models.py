"""Unit tests for model construction from backend payloads."""

import pytest
from pydantic import ValidationError

from ragchat.models import (
    AssembledContext,
    ContextFragment,
    DocumentRecord,
    DocumentStatus,
    MinedResponse,
    SourceReference,
    VisualizationPayload,
)


class TestDocumentRecord:
    """DocumentRecord.from_payload and immutability."""

    def test_camel_case_payload(self) -> None:
        record = DocumentRecord.from_payload(
            {"documentId": "d1", "filename": "a.csv", "fileType": "csv", "size": 10, "progress": 55.6}
        )

        assert record.document_id == "d1"
        assert record.filename == "a.csv"
        assert record.file_type == "csv"
        assert record.size_bytes == 10
        assert record.progress == 55

    def test_overrides_win(self) -> None:
        record = DocumentRecord.from_payload(
            {"document_id": "d1", "processing_progress": 10},
            document_id="d2",
            status=DocumentStatus.completed,
            progress=100,
        )

        assert record.document_id == "d2"
        assert record.status == DocumentStatus.completed
        assert record.progress == 100

    def test_frozen(self) -> None:
        record = DocumentRecord(document_id="d1")

        with pytest.raises(ValidationError):
            record.progress = 50  # type: ignore[misc]

    def test_updated_copy(self) -> None:
        record = DocumentRecord(document_id="d1")

        updated = record.model_copy(update={"progress": 50})

        assert record.progress == 0
        assert updated.progress == 50


class TestContextFragment:
    """Search hit to fragment mapping."""

    def test_body_priority(self) -> None:
        fragment = ContextFragment.from_search_result(
            {"chunk_text": "primeiro", "text": "segundo", "content": "terceiro", "filename": "a.pdf"}, 1
        )

        assert fragment.text == "primeiro"

    def test_body_falls_back_to_content(self) -> None:
        fragment = ContextFragment.from_search_result({"chunk_text": "", "content": "terceiro"}, 1)

        assert fragment.text == "terceiro"

    def test_fallback_name_and_metadata(self) -> None:
        fragment = ContextFragment.from_search_result(
            {
                "document_id": "d9",
                "chunk_text": "x",
                "chunk_index": 3,
                "similarity": 0.82,
                "metadata": {"page": 4, "section": "Resumo"},
            },
            position=2,
        )

        assert fragment.filename == "Documento 2"
        assert fragment.chunk_index == 3
        assert fragment.page == "4"
        assert fragment.section == "Resumo"
        assert fragment.similarity_score == pytest.approx(0.82)

    def test_original_filename(self) -> None:
        fragment = ContextFragment.from_search_result({"original_filename": "b.docx", "text": "y"}, 1)

        assert fragment.filename == "b.docx"


class TestAssembledContext:
    """Unique document view over sources."""

    def test_documents_first_seen_order(self) -> None:
        sources = [
            SourceReference(document_id="a", filename="a.pdf", text="1", index=1),
            SourceReference(document_id="b", filename="b.pdf", text="2", index=2),
            SourceReference(document_id="a", filename="a.pdf", text="3", index=3),
        ]
        context = AssembledContext(context_text="...", sources=sources)

        assert [d.document_id for d in context.documents] == ["a", "b"]

    def test_source_index_is_one_based(self) -> None:
        with pytest.raises(ValidationError):
            SourceReference(filename="a.pdf", index=0)


class TestMinedResponse:
    """Convenience flags."""

    def test_flags(self) -> None:
        empty = MinedResponse()
        mined = MinedResponse(
            visualization=VisualizationPayload(type="mermaid", data="graph TD", source="mermaid")
        )

        assert empty.has_visualization is False
        assert empty.has_citations is False
        assert mined.has_visualization is True
