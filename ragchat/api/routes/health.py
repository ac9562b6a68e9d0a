"""Health check endpoints.

/health reports that the app is running; /healthz also checks that the
document processor behind the backend is reachable.
"""

import json
from typing import Any

from fastapi import APIRouter, Response

from ragchat.adapters.documents import DocumentServiceClient
from ragchat.adapters.http import BackendClient
from ragchat.config import Settings, get_settings

router = APIRouter()


async def check_processor(settings: Settings) -> tuple[bool, str]:
    """Check document processor availability.

    Returns:
        (is_ok, status_message)
    """
    async with BackendClient(settings=settings) as backend:
        health = await DocumentServiceClient(backend, settings=settings).health()
    if health.available:
        return (True, "ok")
    return (False, health.message or "unavailable")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Readiness check including the document processor.

    Returns:
        200 with component status when the processor is available
        503 otherwise
    """
    settings = get_settings()
    processor_ok, processor_status = await check_processor(settings)

    response_body = {
        "status": "ok" if processor_ok else "degraded",
        "components": {"document_processor": processor_status},
    }

    if not processor_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
