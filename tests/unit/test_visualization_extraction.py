"""Unit tests for visualization grammars."""

import pytest

from ragchat.mining.visualizations import (
    coerce_cell,
    extract_visualization,
    match_json_data,
    match_markdown_table,
    match_mermaid,
    parse_markdown_table,
)

TABLE = """Segue o resumo:

| Produto | Peso |
|---------|:----:|
| A | 42 |
| B | 42kg |
| C | 4.5 |

Qualquer dúvida, pergunte."""

VIZ_BLOCK = """```visualization
{"type": "bar", "data": [{"mes": "jan", "valor": 10}]}
```"""


class TestPrecedence:
    """First matching grammar wins."""

    def test_visualization_block_beats_table(self) -> None:
        payload = extract_visualization(f"{TABLE}\n\n{VIZ_BLOCK}")

        assert payload is not None
        assert payload.type == "chart"
        assert payload.source == "visualization_block"
        assert payload.data == {"type": "bar", "data": [{"mes": "jan", "valor": 10}]}

    def test_malformed_visualization_json_falls_through_to_table(self) -> None:
        text = "```visualization\n{not json}\n```\n\n" + TABLE

        payload = extract_visualization(text)

        assert payload is not None
        assert payload.source == "markdown_table"

    def test_malformed_visualization_alone_is_nothing(self) -> None:
        assert extract_visualization("```visualization\n{broken\n```") is None

    def test_table_beats_json_and_mermaid(self) -> None:
        text = TABLE + '\n```json\n[{"a": 1}]\n```\n```mermaid\ngraph TD; A-->B\n```'

        payload = extract_visualization(text)

        assert payload is not None
        assert payload.source == "markdown_table"

    @pytest.mark.parametrize("text", [None, "", "Apenas texto, sem dados estruturados."])
    def test_nothing_to_find(self, text: str | None) -> None:
        assert extract_visualization(text) is None

    def test_custom_grammar_list(self) -> None:
        payload = extract_visualization(f"{TABLE}\n{VIZ_BLOCK}", [match_mermaid, match_markdown_table])

        assert payload is not None
        assert payload.source == "markdown_table"


class TestMarkdownTable:
    """Line-based table parsing."""

    def test_rows_and_coercion(self) -> None:
        payload = match_markdown_table(TABLE)

        assert payload is not None
        assert payload.type == "table"
        assert payload.data == [
            {"Produto": "A", "Peso": 42},
            {"Produto": "B", "Peso": "42kg"},
            {"Produto": "C", "Peso": 4.5},
        ]

    def test_rows_with_wrong_width_are_dropped(self) -> None:
        text = "| a | b |\n|---|---|\n| 1 | 2 |\n| 3 |\n| 5 | 6 |"

        assert parse_markdown_table(text) == [{"a": 1, "b": 2}, {"a": 5, "b": 6}]

    def test_table_ends_at_first_non_row_line(self) -> None:
        text = "| a | b |\n|---|---|\n| 1 | 2 |\n\n| 3 | 4 |"

        assert parse_markdown_table(text) == [{"a": 1, "b": 2}]

    def test_header_without_rows_is_not_a_table(self) -> None:
        assert parse_markdown_table("| a | b |\n|---|---|\nfim") is None

    def test_missing_separator_is_not_a_table(self) -> None:
        assert parse_markdown_table("| a | b |\n| 1 | 2 |\n| 3 | 4 |") is None

    @pytest.mark.parametrize(
        "cell, expected",
        [("42", 42), ("-7", -7), ("4.5", 4.5), ("1e3", 1000.0), ("42kg", "42kg"), ("R$ 10", "R$ 10"), ("", "")],
    )
    def test_coerce_cell(self, cell: str, expected: object) -> None:
        result = coerce_cell(cell)

        assert result == expected
        assert type(result) is type(expected)


class TestJsonData:
    """Fenced JSON arrays of records."""

    def test_array_with_numeric_field(self) -> None:
        payload = match_json_data('```json\n[{"mes": "jan", "valor": 10}, {"mes": "fev", "valor": 12}]\n```')

        assert payload is not None
        assert payload.type == "data"
        assert payload.data[1] == {"mes": "fev", "valor": 12}

    def test_unlabelled_fence(self) -> None:
        assert match_json_data('```\n[{"x": 1.5}]\n```') is not None

    @pytest.mark.parametrize(
        "body",
        ['[{"mes": "jan"}]', '[{"ativo": true}]', '[{"a": 1,}]'],
    )
    def test_rejected_arrays(self, body: str) -> None:
        assert match_json_data(f"```json\n{body}\n```") is None


class TestMermaid:
    """Mermaid blocks pass through verbatim."""

    def test_body_is_kept(self) -> None:
        payload = match_mermaid("Fluxo:\n```mermaid\ngraph TD\n  A-->B\n```")

        assert payload is not None
        assert payload.type == "mermaid"
        assert payload.data == "graph TD\n  A-->B"

    def test_empty_block(self) -> None:
        assert match_mermaid("```mermaid\n```") is None
