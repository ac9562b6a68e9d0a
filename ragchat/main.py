"""FastAPI application for server-side response mining and health."""

from fastapi import FastAPI

from ragchat.api.routes.health import router as health_router
from ragchat.api.routes.metrics import router as metrics_router
from ragchat.api.routes.responses import router as responses_router

app = FastAPI(title="RAG Chat API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(responses_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "RAG Chat API", "version": "0.1.0"}
