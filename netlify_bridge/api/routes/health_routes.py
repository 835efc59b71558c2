"""
Health Routes

Liveness, service information and Prometheus metrics.
"""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from netlify_bridge.config.constants import SERVICE_NAME, SERVICE_VERSION
from netlify_bridge.config.settings import Settings
from netlify_bridge.database.redis_client import redis_health_check
from netlify_bridge.dependencies import get_app_settings
from netlify_bridge.exceptions.base_exceptions import NotFoundError
from netlify_bridge.utils.metrics import CONTENT_TYPE_LATEST, export_metrics

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> JSONResponse:
    """Health check including the key-value store."""
    redis_status = await redis_health_check()
    healthy = bool(redis_status.get("healthy"))

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "dependencies": {"redis": redis_status},
        }
    )


@router.get("/info")
async def service_info(settings: Annotated[Settings, Depends(get_app_settings)]) -> Dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": settings.ENVIRONMENT.value,
        "debug": settings.DEBUG,
        "slash_command": settings.slash_command,
        "service_url": settings.SERVICE_URL,
        "webhook_signing": bool(settings.WEBHOOK_SECRET),
    }


@router.get("/metrics")
async def prometheus_metrics(settings: Annotated[Settings, Depends(get_app_settings)]) -> Response:
    if not settings.METRICS_ENABLED:
        raise NotFoundError("Metrics are disabled")
    return Response(export_metrics(), media_type=CONTENT_TYPE_LATEST)
