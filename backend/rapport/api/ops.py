"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from rapport.container import ServiceContainer, get_container
from rapport.obs import health

router = APIRouter(prefix="", tags=["ops"])


@router.get("/health/live")
async def live() -> dict:
	return await health.liveness()


@router.get("/health/ready")
async def ready(container: ServiceContainer = Depends(get_container)) -> JSONResponse:
	status_code, payload = await health.readiness(container.redis, container.pool)
	return JSONResponse(status_code=status_code, content=payload)


@router.get("/metrics")
async def metrics() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
