from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from apps.api.metrics import metrics_registry, render_prometheus

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=PlainTextResponse, include_in_schema=False)
async def metrics() -> PlainTextResponse:
    return PlainTextResponse(render_prometheus(metrics_registry), media_type="text/plain; version=0.0.4")
