"""Visualization grammars for assistant replies.

Grammars are tried in a fixed order and the first match wins; earlier
grammars are more explicit than later ones:

1. ```visualization fenced JSON (chart)
2. markdown table with header, separator and at least one row (table)
3. fenced JSON array of objects with a numeric field (data)
4. ```mermaid fenced block, passed through verbatim (mermaid)
"""

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from ragchat.models.mining import VisualizationPayload

logger = logging.getLogger(__name__)

VISUALIZATION_BLOCK_RE = re.compile(r"```visualization\s*([\s\S]*?)\s*```")
JSON_ARRAY_BLOCK_RE = re.compile(r"```(?:json)?\s*(\[\s*\{[\s\S]*?\}\s*\])\s*```")
MERMAID_BLOCK_RE = re.compile(r"```mermaid\s*([\s\S]*?)\s*```")

NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
SEPARATOR_CELL_RE = re.compile(r":?-+:?")

Grammar = Callable[[str], VisualizationPayload | None]


def coerce_cell(value: str) -> int | float | str:
    """Numeric-looking cells become numbers; everything else stays a string.

    >>> coerce_cell("42"), coerce_cell("4.5"), coerce_cell("42kg")
    (42, 4.5, '42kg')
    """
    if not NUMBER_RE.fullmatch(value):
        return value
    if any(c in value for c in ".eE"):
        return float(value)
    return int(value)


def _split_row(line: str) -> list[str] | None:
    stripped = line.strip()
    if len(stripped) < 2 or not stripped.startswith("|") or not stripped.endswith("|"):
        return None
    return [cell.strip() for cell in stripped[1:-1].split("|")]


def _is_separator(cells: list[str]) -> bool:
    return all(SEPARATOR_CELL_RE.fullmatch(cell) for cell in cells)


def parse_markdown_table(text: str) -> list[dict[str, Any]] | None:
    """Parse the first markdown table in ``text`` into row dicts.

    Rows whose cell count differs from the header are dropped. Returns
    None when there is no header/separator pair followed by a usable row.
    """
    lines = text.splitlines()
    for i in range(len(lines) - 2):
        headers = _split_row(lines[i])
        separator = _split_row(lines[i + 1])
        if headers is None or separator is None or not _is_separator(separator):
            continue

        rows: list[dict[str, Any]] = []
        for line in lines[i + 2 :]:
            cells = _split_row(line)
            if cells is None:
                break
            if len(cells) != len(headers):
                continue
            rows.append({h: coerce_cell(c) for h, c in zip(headers, cells, strict=True)})
        if rows:
            return rows
    return None


def _has_numeric_value(item: dict[str, Any]) -> bool:
    return any(isinstance(v, int | float) and not isinstance(v, bool) for v in item.values())


def match_visualization_block(text: str) -> VisualizationPayload | None:
    match = VISUALIZATION_BLOCK_RE.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError:
        logger.debug("Ignoring visualization block with invalid JSON")
        return None
    return VisualizationPayload(type="chart", data=data, source="visualization_block")


def match_markdown_table(text: str) -> VisualizationPayload | None:
    rows = parse_markdown_table(text)
    if not rows:
        return None
    return VisualizationPayload(type="table", data=rows, source="markdown_table")


def match_json_data(text: str) -> VisualizationPayload | None:
    match = JSON_ARRAY_BLOCK_RE.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError:
        logger.debug("Ignoring fenced JSON array that does not parse")
        return None
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return None
    if not _has_numeric_value(data[0]):
        return None
    return VisualizationPayload(type="data", data=data, source="json_data")


def match_mermaid(text: str) -> VisualizationPayload | None:
    match = MERMAID_BLOCK_RE.search(text)
    if not match or not match.group(1):
        return None
    return VisualizationPayload(type="mermaid", data=match.group(1), source="mermaid")


VISUALIZATION_GRAMMARS: list[Grammar] = [
    match_visualization_block,
    match_markdown_table,
    match_json_data,
    match_mermaid,
]


def extract_visualization(
    text: str | None,
    grammars: list[Grammar] | None = None,
) -> VisualizationPayload | None:
    """Return the payload of the first grammar that matches, or None."""
    if not text:
        return None
    for grammar in grammars or VISUALIZATION_GRAMMARS:
        payload = grammar(text)
        if payload is not None:
            return payload
    return None
