"""Integration tests for the /responses endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from ragchat.main import app

REPLY = """Conforme "vendas.csv", o resultado foi:

| mes | valor |
|-----|-------|
| jan | 10 |
| fev | 12 |
"""


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestMineEndpoint:
    """POST /responses/mine."""

    def test_table_and_citation(self, client: TestClient) -> None:
        response = client.post("/responses/mine", json={"text": REPLY})

        assert response.status_code == 200
        data = response.json()
        assert data["visualization"]["source"] == "markdown_table"
        assert data["visualization"]["data"] == [{"mes": "jan", "valor": 10}, {"mes": "fev", "valor": 12}]
        assert data["citations"][0]["name"] == "vendas.csv"
        assert data["citations"][0]["type"] == "cited"

    def test_plain_text(self, client: TestClient) -> None:
        response = client.post("/responses/mine", json={"text": "Olá"})

        assert response.status_code == 200
        assert response.json() == {"visualization": None, "citations": []}

    def test_missing_text(self, client: TestClient) -> None:
        response = client.post("/responses/mine", json={})

        assert response.status_code == 422


class TestChartEndpoint:
    """POST /responses/chart."""

    def test_auto(self, client: TestClient) -> None:
        rows = [{"mes": "jan", "valor": 10}, {"mes": "fev", "valor": 12}]

        response = client.post("/responses/chart", json={"rows": rows})

        assert response.status_code == 200
        data = response.json()
        assert data["chart_type"] == "pie"
        assert data["name_key"] == "mes"
        assert data["value_key"] == "valor"

    def test_explicit_line(self, client: TestClient) -> None:
        rows = [{"mes": "jan", "valor": 10}]

        response = client.post("/responses/chart", json={"rows": rows, "chart_type": "line", "title": "Vendas"})

        data = response.json()
        assert data["chart_type"] == "line"
        assert data["title"] == "Vendas"
        assert data["x_key"] == "mes"
        assert data["y_keys"] == ["valor"]

    def test_unknown_type(self, client: TestClient) -> None:
        response = client.post("/responses/chart", json={"rows": [{"a": 1}], "chart_type": "radar"})

        assert response.status_code == 422
        assert "unsupported chart type" in response.json()["detail"]

    def test_empty_rows(self, client: TestClient) -> None:
        response = client.post("/responses/chart", json={"rows": []})

        assert response.status_code == 422


class TestExportEndpoint:
    """POST /responses/export."""

    def test_csv(self, client: TestClient) -> None:
        response = client.post("/responses/export", json={"rows": [{"a": 1, "b": "x"}]})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.text == "a,b\n1,x"

    def test_json(self, client: TestClient) -> None:
        response = client.post("/responses/export", json={"rows": [{"a": 1}], "format": "json"})

        assert response.headers["content-type"].startswith("application/json")
        assert json.loads(response.text) == [{"a": 1}]

    def test_unsupported_format(self, client: TestClient) -> None:
        response = client.post("/responses/export", json={"rows": [], "format": "xlsx"})

        assert response.status_code == 422
