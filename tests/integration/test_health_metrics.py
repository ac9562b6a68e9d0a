"""Integration tests for /health, /healthz and /metrics endpoints."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from ragchat.api.routes.health import check_processor
from ragchat.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoint:
    """Test /health and /healthz endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @patch("ragchat.api.routes.health.check_processor", new_callable=AsyncMock)
    def test_healthz_returns_200_when_processor_ok(
        self,
        mock_check_processor: AsyncMock,
        client: TestClient,
    ) -> None:
        """Test /healthz returns 200 when the document processor is available."""
        mock_check_processor.return_value = (True, "ok")

        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"]["document_processor"] == "ok"

    @patch("ragchat.api.routes.health.check_processor", new_callable=AsyncMock)
    def test_healthz_returns_503_when_processor_down(
        self,
        mock_check_processor: AsyncMock,
        client: TestClient,
    ) -> None:
        """Test /healthz returns 503 when the processor reports unavailable."""
        mock_check_processor.return_value = (False, "Serviço indisponível")

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["document_processor"] == "Serviço indisponível"

    def test_root(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.json() == {"message": "RAG Chat API", "version": "0.1.0"}


class TestCheckProcessor:
    """check_processor against a mocked backend."""

    @pytest.mark.asyncio
    async def test_available(self, settings: object) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": True, "data": {"available": True}})
        )
        real_client = httpx.AsyncClient

        with patch(
            "ragchat.adapters.http.httpx.AsyncClient",
            side_effect=lambda **kwargs: real_client(transport=transport, **kwargs),
        ):
            result = await check_processor(settings)  # type: ignore[arg-type]

        assert result == (True, "ok")

    @pytest.mark.asyncio
    async def test_unreachable(self, settings: object) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused")

        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        with patch(
            "ragchat.adapters.http.httpx.AsyncClient",
            side_effect=lambda **kwargs: real_client(transport=transport, **kwargs),
        ):
            ok, message = await check_processor(settings)  # type: ignore[arg-type]

        assert ok is False
        assert message


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        """Test /metrics returns Prometheus text format."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]

    def test_metrics_include_mined_responses(self, client: TestClient) -> None:
        client.post("/responses/mine", json={"text": "```mermaid\ngraph TD; A-->B\n```"})

        response = client.get("/metrics")

        assert 'ragchat_responses_mined_total{source="mermaid"}' in response.text
