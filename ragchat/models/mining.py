"""Structures mined from assistant replies."""

from typing import Any, Literal

from pydantic import BaseModel, Field

VisualizationType = Literal["chart", "table", "data", "mermaid"]
VisualizationSource = Literal["visualization_block", "markdown_table", "json_data", "mermaid"]
CitationType = Literal["mentioned", "cited", "source", "named", "paged"]
ChartType = Literal["bar", "line", "pie", "scatter", "area", "table"]


class VisualizationPayload(BaseModel):
    """Visualization found in a reply."""

    type: VisualizationType
    data: Any
    source: VisualizationSource


class DocumentCitation(BaseModel):
    """A reference to a document found in a reply."""

    name: str
    type: CitationType
    page: str | None = None
    context: str


class MinedResponse(BaseModel):
    """Everything extracted from a single assistant reply."""

    visualization: VisualizationPayload | None = None
    citations: list[DocumentCitation] = Field(default_factory=list)

    @property
    def has_visualization(self) -> bool:
        return self.visualization is not None

    @property
    def has_citations(self) -> bool:
        return len(self.citations) > 0


class ChartSpec(BaseModel):
    """Renderer-agnostic chart description (no styling)."""

    chart_type: ChartType
    title: str | None = None
    x_key: str | None = None
    y_keys: list[str] = Field(default_factory=list)
    name_key: str | None = None
    value_key: str | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)
