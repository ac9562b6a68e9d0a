"""ResponseMiner: visualizations and citations from assistant replies."""

from ragchat.mining.citations import CITATION_PATTERNS, CitationPattern, extract_citations
from ragchat.mining.visualizations import VISUALIZATION_GRAMMARS, Grammar, extract_visualization
from ragchat.models.mining import DocumentCitation, MinedResponse, VisualizationPayload


# No-op default; see PrometheusMiningMetrics
class MiningMetrics:
    """Interface for mining metrics."""

    def inc_mined(self, source: str) -> None:
        """Count one mined reply."""
        pass


class ResponseMiner:
    """Run the visualization and citation passes over one reply.

    The passes are independent: a reply can yield a visualization, any
    number of citations, both or neither. Pure apart from metrics.
    """

    def __init__(
        self,
        grammars: list[Grammar] | None = None,
        citation_patterns: list[CitationPattern] | None = None,
        metrics: MiningMetrics | None = None,
    ) -> None:
        self._grammars = grammars or VISUALIZATION_GRAMMARS
        self._patterns = citation_patterns or CITATION_PATTERNS
        self._metrics = metrics or MiningMetrics()

    def visualization(self, text: str | None) -> VisualizationPayload | None:
        return extract_visualization(text, self._grammars)

    def citations(self, text: str | None) -> list[DocumentCitation]:
        return extract_citations(text, self._patterns)

    def mine(self, text: str | None) -> MinedResponse:
        """Both passes over ``text``."""
        visualization = self.visualization(text)
        self._metrics.inc_mined(visualization.source if visualization else "none")
        return MinedResponse(visualization=visualization, citations=self.citations(text))
