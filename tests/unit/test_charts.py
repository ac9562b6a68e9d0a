"""Unit tests for chart suggestion, chart specs and data export."""

import json

import pytest
from prometheus_client import REGISTRY

from ragchat.mining.charts import build_chart_spec, export_rows, suggest_chart_type
from ragchat.mining.miner import MiningMetrics, ResponseMiner
from ragchat.utils.metrics import PrometheusMiningMetrics

SALES = [
    {"mes": "jan", "valor": 10},
    {"mes": "fev", "valor": 12},
    {"mes": "mar", "valor": 9},
]


class TestSuggestChartType:
    """Shape-based chart suggestions."""

    def test_category_and_value_small_is_pie(self) -> None:
        assert suggest_chart_type(SALES) == "pie"

    def test_category_and_value_large_is_bar(self) -> None:
        rows = [{"item": f"i{n}", "qtd": n} for n in range(9)]

        assert suggest_chart_type(rows) == "bar"

    def test_two_numeric_many_rows_is_scatter(self) -> None:
        rows = [{"x": n, "y": n * 2} for n in range(6)]

        assert suggest_chart_type(rows) == "scatter"

    def test_numeric_series_with_dates_is_line(self) -> None:
        rows = [{"data": "2024-01-01", "receita": 10, "custo": 4}]

        assert suggest_chart_type(rows) == "line"

    def test_date_and_single_value_is_line(self) -> None:
        rows = [{"data": "2024-01-01", "receita": 10}]

        assert suggest_chart_type(rows) == "line"

    def test_text_only_is_table(self) -> None:
        assert suggest_chart_type([{"nome": "Ana", "cidade": "Recife"}]) == "table"
        assert suggest_chart_type([]) == "table"


class TestBuildChartSpec:
    """Axis key selection and titles."""

    def test_auto_pie(self) -> None:
        spec = build_chart_spec(SALES)

        assert spec is not None
        assert spec.chart_type == "pie"
        assert spec.title == "Gráfico de Pizza"
        assert spec.name_key == "mes"
        assert spec.value_key == "valor"
        assert spec.data == SALES

    def test_explicit_bar_with_overrides(self) -> None:
        spec = build_chart_spec(SALES, "bar", x_key="mes", y_key="valor", title="Vendas")

        assert spec is not None
        assert spec.chart_type == "bar"
        assert spec.title == "Vendas"
        assert spec.x_key == "mes"
        assert spec.y_keys == ["valor"]

    def test_scatter_uses_two_numeric_columns(self) -> None:
        rows = [{"x": n, "y": n * 2} for n in range(6)]

        spec = build_chart_spec(rows)

        assert spec is not None
        assert (spec.x_key, spec.y_keys) == ("x", ["y"])

    def test_table_has_no_axes(self) -> None:
        spec = build_chart_spec(SALES, "table")

        assert spec is not None
        assert spec.x_key is None
        assert spec.y_keys == []

    def test_empty_rows(self) -> None:
        assert build_chart_spec([]) is None

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="unsupported chart type"):
            build_chart_spec(SALES, "radar")


class TestExportRows:
    """CSV and JSON export."""

    def test_csv(self) -> None:
        assert export_rows(SALES, "csv") == "mes,valor\njan,10\nfev,12\nmar,9"

    def test_csv_quotes_special_values(self) -> None:
        rows = [{"nome": "Silva, Ana", "nota": 'diz "oi"', "ativo": True}]

        assert export_rows(rows) == 'nome,nota,ativo\n"Silva, Ana","diz ""oi""",true'

    def test_csv_empty(self) -> None:
        assert export_rows([], "csv") == ""

    def test_json(self) -> None:
        text = export_rows(SALES, "JSON")

        assert json.loads(text) == SALES
        assert text.startswith("[\n  {")

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="unsupported export format"):
            export_rows(SALES, "xlsx")


class RecordingMiningMetrics(MiningMetrics):
    def __init__(self) -> None:
        self.sources: list[str] = []

    def inc_mined(self, source: str) -> None:
        self.sources.append(source)


class TestResponseMiner:
    """Both passes run independently."""

    def test_visualization_and_citations(self) -> None:
        metrics = RecordingMiningMetrics()
        miner = ResponseMiner(metrics=metrics)
        text = "Conforme \"vendas.csv\":\n\n| mes | valor |\n|---|---|\n| jan | 10 |"

        mined = miner.mine(text)

        assert mined.has_visualization
        assert mined.visualization is not None
        assert mined.visualization.data == [{"mes": "jan", "valor": 10}]
        assert [c.name for c in mined.citations] == ["vendas.csv"]
        assert metrics.sources == ["markdown_table"]

    def test_plain_reply(self) -> None:
        metrics = RecordingMiningMetrics()

        mined = ResponseMiner(metrics=metrics).mine("Olá! Como posso ajudar?")

        assert not mined.has_visualization
        assert not mined.has_citations
        assert metrics.sources == ["none"]

    def test_prometheus_counter(self) -> None:
        labels = {"source": "none"}
        before = REGISTRY.get_sample_value("ragchat_responses_mined_total", labels) or 0.0

        ResponseMiner(metrics=PrometheusMiningMetrics()).mine("Sem dados.")

        assert REGISTRY.get_sample_value("ragchat_responses_mined_total", labels) == before + 1
