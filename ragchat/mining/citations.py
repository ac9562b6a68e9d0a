"""Document citation patterns for assistant replies (Portuguese phrasing).

Every pattern is applied to the whole text and all matches are kept, in
pattern order. A filename matched by two patterns is reported twice;
consumers that want one entry per document should de-duplicate on
``name`` themselves.
"""

import re
from dataclasses import dataclass

from ragchat.models.mining import CitationType, DocumentCitation


@dataclass(frozen=True)
class CitationPattern:
    """A citation regex and which groups hold the name and page."""

    type: CitationType
    regex: re.Pattern[str]
    name_group: int = 1
    page_group: int | None = None


CITATION_PATTERNS: list[CitationPattern] = [
    # no documento "X" / no arquivo "X"
    CitationPattern(
        "mentioned",
        re.compile(r"""no\s+(?:documento|arquivo)\s+["']([^"']+)["']""", re.IGNORECASE),
    ),
    # de acordo com "X.ext" / conforme / segundo / baseado em
    CitationPattern(
        "cited",
        re.compile(
            r"""(?:de acordo com|conforme|segundo|baseado em)\s+["']([^"']+\.\w{3,4})["']""",
            re.IGNORECASE,
        ),
    ),
    # Fonte: X.ext / Referência: X.ext / Ref.: X.ext
    CitationPattern(
        "source",
        re.compile(r"(?:fonte|referência|ref\.):\s*([^,;.\n]+\.\w{3,4})", re.IGNORECASE),
    ),
    # documento chamado "X" / intitulado / nomeado
    CitationPattern(
        "named",
        re.compile(
            r"""documento\s+(?:chamado|intitulado|nomeado)\s+["']([^"']+)["']""", re.IGNORECASE
        ),
    ),
    # página N do documento "X"
    CitationPattern(
        "paged",
        re.compile(
            r"""página\s+(\d+)\s+(?:do|de|no)\s+(?:documento|arquivo)\s+["']([^"']+)["']""",
            re.IGNORECASE,
        ),
        name_group=2,
        page_group=1,
    ),
]


def extract_citations(
    text: str | None,
    patterns: list[CitationPattern] | None = None,
) -> list[DocumentCitation]:
    """Collect citations from every pattern, concatenated in pattern order."""
    if not text:
        return []
    citations: list[DocumentCitation] = []
    for pattern in patterns or CITATION_PATTERNS:
        for match in pattern.regex.finditer(text):
            citations.append(
                DocumentCitation(
                    name=match.group(pattern.name_group).strip(),
                    type=pattern.type,
                    page=match.group(pattern.page_group) if pattern.page_group else None,
                    context=match.group(0),
                )
            )
    return citations
