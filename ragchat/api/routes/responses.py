"""Response mining endpoints - POST /responses/mine, /chart, /export."""

from typing import Any

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from ragchat.mining.charts import build_chart_spec, export_rows
from ragchat.mining.miner import ResponseMiner
from ragchat.models.mining import ChartSpec, MinedResponse
from ragchat.utils.metrics import PrometheusMiningMetrics

router = APIRouter(prefix="/responses", tags=["responses"])

_miner = ResponseMiner(metrics=PrometheusMiningMetrics())


class MineRequest(BaseModel):
    """Request body for POST /responses/mine."""

    text: str = Field(..., description="Assistant reply text")


class ChartRequest(BaseModel):
    """Request body for POST /responses/chart."""

    rows: list[dict[str, Any]] = Field(..., min_length=1)
    chart_type: str = Field("auto", description="bar, line, pie, scatter, area, table or auto")
    x_key: str | None = None
    y_key: str | None = None
    title: str | None = None


class ExportRequest(BaseModel):
    """Request body for POST /responses/export."""

    rows: list[dict[str, Any]]
    format: str = Field("csv", pattern="^(csv|json)$")


@router.post("/mine", response_model=MinedResponse)
async def mine_response(request: MineRequest) -> MinedResponse:
    """Extract the visualization and document citations from a reply."""
    return _miner.mine(request.text)


@router.post("/chart", response_model=ChartSpec)
async def chart_spec(request: ChartRequest) -> ChartSpec:
    """Describe a chart for tabular data.

    Raises:
        HTTPException: 422 for an unknown chart type
    """
    try:
        spec = build_chart_spec(
            request.rows,
            request.chart_type,
            x_key=request.x_key,
            y_key=request.y_key,
            title=request.title,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    if spec is None:
        raise HTTPException(status_code=422, detail="no rows")
    return spec


@router.post("/export")
async def export_data(request: ExportRequest) -> Response:
    """Serialize rows as CSV or JSON."""
    body = export_rows(request.rows, request.format)
    media_type = "text/csv" if request.format == "csv" else "application/json"
    return Response(content=body, media_type=media_type)
