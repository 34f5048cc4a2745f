"""Liveness, readiness and metrics endpoints."""

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse, Response

router = APIRouter(prefix="/internal", include_in_schema=False)

HTTP_SERVICE_UNAVAILABLE = 503


@router.get("/isalive")
async def is_alive() -> JSONResponse:
    return JSONResponse({"status": "alive"})


@router.get("/isready")
async def is_ready(request: Request) -> JSONResponse:
    if getattr(request.app.state, "components", None) is None:
        return JSONResponse(
            {"status": "starting"}, status_code=HTTP_SERVICE_UNAVAILABLE
        )
    return JSONResponse({"status": "ready"})


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    """Prometheus text exposition of this app's collectors."""
    collectors = request.app.state.metrics
    return Response(collectors.render(), media_type=collectors.content_type)
