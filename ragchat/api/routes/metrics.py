"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - ragchat_retry_attempts_total{operation, outcome}
    - ragchat_retry_latency_ms{operation, outcome}
    - ragchat_ingestion_polls_total{outcome}
    - ragchat_ingestion_outcomes_total{status}
    - ragchat_responses_mined_total{source}
    """
    metrics_output = generate_latest()
    return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
